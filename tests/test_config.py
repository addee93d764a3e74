"""Tests for DomainOptions, ProjectConfig and domain computation"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from devdomain.config import DomainOptions, ProjectConfig, compute_domain, slugify


class TestDomainOptions(unittest.TestCase):
    def test_defaults(self):
        options = DomainOptions()
        self.assertEqual(options.admin_url, "http://127.0.0.1:2019")
        self.assertEqual(options.server_id, "devdomain")
        self.assertEqual(options.listen, [":443", ":80"])
        self.assertTrue(options.fail_on_active_domain)
        self.assertTrue(options.insert_first)
        self.assertEqual(options.probe_timeout, 0.35)

    def test_listen_default_not_shared(self):
        a = DomainOptions()
        a.listen.append(":8443")
        self.assertEqual(DomainOptions().listen, [":443", ":80"])

    def test_from_dict(self):
        options = DomainOptions.from_dict({"listen": ":8443", "tld": "test", "domain": None, "bogus": 1})
        self.assertEqual(options.listen, [":8443"])
        self.assertEqual(options.tld, "test")
        self.assertIsNone(options.domain)

    def test_from_dict_rejects_bad_values(self):
        with self.assertRaises(ValueError):
            DomainOptions.from_dict({"listen": [443]})
        with self.assertRaises(ValueError):
            DomainOptions.from_dict({"name_source": "git"})


class TestProjectConfig(unittest.TestCase):
    def test_no_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = ProjectConfig(Path(tmpdir))
            self.assertFalse(config.exists())
            self.assertEqual(config.options(), DomainOptions())

    def test_loads_yaml_from_parent(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devdomain.yml").write_text(
                "domain: shop.local\nserver_id: shop\nfail_on_active_domain: false\nlisten:\n  - ':8443'\n"
            )
            child = Path(tmpdir) / "src" / "app"
            child.mkdir(parents=True)

            config = ProjectConfig(child)
            options = config.options()

            self.assertTrue(config.exists())
            self.assertEqual(config.project_root, Path(tmpdir).resolve())
            self.assertEqual(options.domain, "shop.local")
            self.assertEqual(options.server_id, "shop")
            self.assertFalse(options.fail_on_active_domain)
            self.assertEqual(options.listen, [":8443"])

    def test_overrides_win_over_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devdomain.yaml").write_text("server_id: shop\n")
            options = ProjectConfig(Path(tmpdir)).options(server_id="cli", admin_url=None)
            self.assertEqual(options.server_id, "cli")
            self.assertEqual(options.admin_url, "http://127.0.0.1:2019")

    def test_non_mapping_file_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devdomain.yml").write_text("- a\n- b\n")
            with self.assertRaises(ValueError):
                ProjectConfig(Path(tmpdir))


@patch.dict(os.environ, {}, clear=False)
class TestComputeDomain(unittest.TestCase):
    def setUp(self):
        os.environ.pop("DEVDOMAIN_VALUE", None)

    def test_slugify(self):
        self.assertEqual(slugify("My App_v2!"), "my-app-v2")
        self.assertEqual(slugify("--Shop--"), "shop")

    def test_from_folder(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            folder = Path(tmpdir) / "My Shop"
            folder.mkdir()
            self.assertEqual(compute_domain(DomainOptions(), folder), "my-shop.local")

    def test_from_pyproject(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "pyproject.toml").write_text('[project]\nname = "Acme_API"\n')
            options = DomainOptions(name_source="project", tld="test")
            self.assertEqual(compute_domain(options, Path(tmpdir)), "acme-api.test")

    def test_pyproject_missing_falls_back_to_folder(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            folder = Path(tmpdir) / "widgets"
            folder.mkdir()
            (folder / "pyproject.toml").write_text("not = [valid")
            self.assertEqual(compute_domain(DomainOptions(name_source="project"), folder), "widgets.local")

    def test_explicit_domain(self):
        self.assertEqual(compute_domain(DomainOptions(domain="app.localhost")), "app.localhost")

    def test_env_override(self):
        os.environ["DEVDOMAIN_VALUE"] = "  Env.Local "
        self.assertEqual(compute_domain(DomainOptions(domain="app.localhost")), "env.local")


if __name__ == "__main__":
    unittest.main()
