"""Tests for listening-process lookup and termination"""

import subprocess
import unittest
from collections import namedtuple
from unittest.mock import MagicMock, patch

import psutil

from devdomain.errors import ProcessLookupFailed, ProcessSignalError
from devdomain.processes import list_listening_pids, terminate_pids

Addr = namedtuple("Addr", "ip port")
Conn = namedtuple("Conn", "fd family type laddr raddr status pid")


def _conn(port, pid, status=psutil.CONN_LISTEN):
    return Conn(3, 2, 1, Addr("127.0.0.1", port), (), status, pid)


class TestListListeningPids(unittest.TestCase):
    @patch("devdomain.processes.psutil.net_connections")
    def test_filters_listening_sockets_on_port(self, net_connections):
        net_connections.return_value = [
            _conn(3000, 200),
            _conn(3000, 100),
            _conn(3000, 100),
            _conn(3000, 300, status=psutil.CONN_ESTABLISHED),
            _conn(4000, 400),
            _conn(3000, None),
            Conn(3, 2, 1, (), (), psutil.CONN_LISTEN, 500),
        ]
        self.assertEqual(list_listening_pids(3000), [100, 200])

    @patch("devdomain.processes.psutil.net_connections", return_value=[])
    def test_nothing_listening(self, _net_connections):
        self.assertEqual(list_listening_pids(3000), [])

    @patch("devdomain.processes.shutil.which", return_value="/usr/sbin/lsof")
    @patch("devdomain.processes.subprocess.run")
    @patch("devdomain.processes.psutil.net_connections", side_effect=psutil.AccessDenied())
    def test_falls_back_to_lsof(self, _net_connections, run, _which):
        run.return_value = subprocess.CompletedProcess([], 0, stdout="4242\n77\n4242\n", stderr="")
        self.assertEqual(list_listening_pids(5173), [77, 4242])
        self.assertEqual(run.call_args.args[0], ["lsof", "-nP", "-iTCP:5173", "-sTCP:LISTEN", "-t"])

    @patch("devdomain.processes.shutil.which", return_value="/usr/sbin/lsof")
    @patch("devdomain.processes.subprocess.run")
    @patch("devdomain.processes.psutil.net_connections", side_effect=psutil.AccessDenied())
    def test_lsof_exit_one_means_none(self, _net_connections, run, _which):
        run.return_value = subprocess.CompletedProcess([], 1, stdout="", stderr="")
        self.assertEqual(list_listening_pids(5173), [])

    @patch("devdomain.processes.shutil.which", return_value="/usr/sbin/lsof")
    @patch("devdomain.processes.subprocess.run")
    @patch("devdomain.processes.psutil.net_connections", side_effect=psutil.AccessDenied())
    def test_lsof_failure_raises(self, _net_connections, run, _which):
        run.return_value = subprocess.CompletedProcess([], 2, stdout="", stderr="lsof: bad option")
        with self.assertRaises(ProcessLookupFailed):
            list_listening_pids(5173)

    @patch("devdomain.processes.shutil.which", return_value=None)
    @patch("devdomain.processes.psutil.net_connections", side_effect=PermissionError())
    def test_no_lsof_available(self, _net_connections, _which):
        self.assertEqual(list_listening_pids(5173), [])


class TestTerminatePids(unittest.TestCase):
    @patch("devdomain.processes.psutil.Process")
    def test_terminates_each(self, process):
        self.assertEqual(terminate_pids([10, 11], 3000), 2)
        self.assertEqual([c.args for c in process.call_args_list], [(10,), (11,)])
        self.assertEqual(process.return_value.terminate.call_count, 2)

    @patch("devdomain.processes.psutil.Process")
    def test_stops_at_first_failure(self, process):
        ok = MagicMock()
        gone = MagicMock()
        gone.terminate.side_effect = psutil.NoSuchProcess(11)
        process.side_effect = [ok, gone, MagicMock()]

        with self.assertRaises(ProcessSignalError) as ctx:
            terminate_pids([10, 11, 12], 3000)

        self.assertEqual(ctx.exception.pid, 11)
        self.assertEqual(ctx.exception.port, 3000)
        self.assertEqual(process.call_count, 2)

    def test_empty(self):
        self.assertEqual(terminate_pids([]), 0)


if __name__ == "__main__":
    unittest.main()
