"""Tests for the devdomain command line"""

import unittest
from unittest.mock import patch

from devdomain import cli
from devdomain.admin import CaddyAdmin
from devdomain.errors import DomainNotFoundError, PortNotFoundError
from tests.fake_caddy import FakeCaddy, route_doc, server_config


def _config():
    return server_config(
        routes=[
            route_doc("shop.local", "localhost:3000"),
            route_doc("api.local", "localhost:4000"),
            route_doc("api.local", "localhost:4001"),
            route_doc("docs.local", "localhost"),
        ]
    )


class TestParseArgs(unittest.TestCase):
    def test_leading_verb_ignored(self):
        for verb in ("delete", "unmap", "rm"):
            args = cli.parse_args([verb, "shop.local", "--kill"])
            self.assertEqual(args.domain, "shop.local")
            self.assertEqual(args.mode, "kill")

    def test_defaults(self):
        args = cli.parse_args([])
        self.assertIsNone(args.domain)
        self.assertIsNone(args.mode)
        self.assertIsNone(args.admin_url)
        self.assertFalse(args.list)

    def test_kill_and_unmap_exclusive(self):
        with patch("sys.stderr"), self.assertRaises(SystemExit) as ctx:
            cli.parse_args(["shop.local", "--kill", "--unmap"])
        self.assertEqual(ctx.exception.code, 2)

    def test_admin_flags(self):
        args = cli.parse_args(["--admin-url", "http://127.0.0.1:2020", "--server-id", "shop"])
        self.assertEqual(args.admin_url, "http://127.0.0.1:2020")
        self.assertEqual(args.server_id, "shop")


class ManageTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.fake = FakeCaddy(_config())
        self.ask = patch("devdomain.cli.Prompt.ask")
        self.prompt = self.ask.start()
        self.addCleanup(self.ask.stop)

    async def manage(self, *argv):
        return await cli.manage(cli.parse_args(list(argv)), transport=self.fake.transport)

    def domains(self):
        return [r["match"][0]["host"][0] for r in self.fake.routes()]


class TestManage(ManageTestCase):
    async def test_unmap_flag(self):
        self.assertEqual(await self.manage("rm", "api.local", "--unmap"), 0)
        self.assertEqual(self.domains(), ["shop.local", "docs.local"])
        self.prompt.assert_not_called()

    async def test_kill_single_port(self):
        with patch("devdomain.inventory.list_listening_pids", return_value=[55]) as lookup, patch(
            "devdomain.inventory.terminate_pids", return_value=1
        ):
            self.assertEqual(await self.manage("shop.local", "--kill"), 0)
        lookup.assert_called_once_with(3000)
        self.assertEqual(self.domains(), ["api.local", "api.local", "docs.local"])

    async def test_kill_prompts_for_port_when_ambiguous(self):
        self.prompt.return_value = "4001"
        with patch("devdomain.inventory.list_listening_pids", return_value=[]) as lookup:
            await self.manage("api.local", "--kill")
        lookup.assert_called_once_with(4001)
        self.assertEqual(self.domains(), ["shop.local", "docs.local"])

    async def test_kill_without_port(self):
        with self.assertRaises(PortNotFoundError):
            await self.manage("docs.local", "--kill")
        self.assertEqual(self.fake.mutations, [])

    async def test_interactive_selection_by_number(self):
        self.prompt.side_effect = ["3", "unmap"]
        await self.manage()
        self.assertEqual(self.domains(), ["shop.local", "api.local", "api.local"])

    async def test_cancel(self):
        self.prompt.side_effect = ["shop.local", "cancel"]
        self.assertEqual(await self.manage(), 0)
        self.assertEqual(self.fake.mutations, [])

    async def test_unknown_domain(self):
        with self.assertRaises(DomainNotFoundError):
            await self.manage("nope.local", "--unmap")
        self.assertEqual(self.fake.mutations, [])

    async def test_list_only(self):
        self.assertEqual(await self.manage("--list"), 0)
        self.assertEqual(self.fake.mutations, [])
        self.prompt.assert_not_called()

    async def test_nothing_mapped(self):
        self.fake.config = None
        self.assertEqual(await self.manage("--unmap"), 0)
        self.prompt.assert_not_called()


class TestMain(unittest.TestCase):
    def setUp(self):
        self.fake = FakeCaddy(_config())
        fake = self.fake
        for target, replacement in (
            ("devdomain.cli.setup_logging", None),
            ("devdomain.cli.CaddyAdmin", lambda url, server_id, transport=None: CaddyAdmin(url, server_id, transport=fake.transport)),
        ):
            patcher = patch(target, replacement) if replacement else patch(target)
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_success_exit_code(self):
        self.assertEqual(cli.main(["unmap", "shop.local", "--unmap"]), 0)

    @patch("devdomain.cli.print_error")
    def test_unknown_domain_exit_code(self, print_error):
        self.assertEqual(cli.main(["nope.local", "--unmap"]), 1)
        self.assertIn("nope.local", print_error.call_args.args[0])

    @patch("devdomain.cli.print_error")
    def test_unreachable_admin_exit_code(self, print_error):
        self.fake.fail_with[("GET", "/config/apps/http/servers/devdomain/routes")] = 500
        self.assertEqual(cli.main(["shop.local", "--unmap"]), 1)

    @patch("devdomain.cli.manage", side_effect=KeyboardInterrupt)
    def test_ctrl_c(self, _manage):
        self.assertEqual(cli.main([]), 130)


if __name__ == "__main__":
    unittest.main()
