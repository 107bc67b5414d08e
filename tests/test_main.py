import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from routing_stats.main import create_parser, main
from routing_stats.utils.config import ConfigManager, get_config, reset_config_manager


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self._env = mock.patch.dict(os.environ, {}, clear=True)
        self._env.start()
        self._paths = mock.patch.object(ConfigManager, 'DEFAULT_CONFIG_PATHS', [])
        self._paths.start()
        reset_config_manager()

        self.ris = self.dir / "riswhoisdump.IPv4"
        self.ris.write_text("3333\t193.0.0.0/21\t300\n3333\t193.0.0.0/24\t300\n15169\t8.8.8.0/24\t300\n")
        self.vrps = self.dir / "vrps.csv"
        self.vrps.write_text("ASN,IP Prefix,Max Length,Trust Anchor\n"
                             "AS3333,193.0.0.0/21,21,ripe\nAS64496,192.0.2.0/24,24,ripe\n")
        self.delegations = self.dir / "delegated"
        self.delegations.write_text("ripencc|NL|ipv4|193.0.0.0|2048|19930901|allocated|x\n")
        self.inputs = ['--announcements', str(self.ris), '--vrps', str(self.vrps),
                       '--delegations', str(self.delegations)]

    def tearDown(self):
        reset_config_manager()
        self._paths.stop()
        self._env.stop()
        self._tmp.cleanup()

    def run_cli(self, *argv):
        stdout = io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(io.StringIO()):
            code = main([argv[0], '-q'] + list(argv[1:]))
        return code, stdout.getvalue()


class TestCommands(CliTestCase):

    def test_world(self):
        code, output = self.run_cli('world', *self.inputs)
        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual(data['all']['total'], 3)
        self.assertEqual(data['NL']['invalid_length'], 1)
        self.assertEqual(data['unknown']['vrps_unseen'], 1)

    def test_world_text(self):
        code, output = self.run_cli('world', *self.inputs, '--format', 'text')
        self.assertEqual(code, 0)
        self.assertIn("RPKI ORIGIN VALIDATION BY COUNTRY", output)
        self.assertEqual(get_config().output.format, "text")

    def test_invalids_scoped(self):
        code, output = self.run_cli('invalids', *self.inputs, '--asns', 'AS3333')
        self.assertEqual(code, 0)
        self.assertEqual([item['prefix'] for item in json.loads(output)], ["193.0.0.0/24"])

    def test_seen_unseen_only(self):
        code, output = self.run_cli('seen', *self.inputs, '--unseen-only')
        self.assertEqual(code, 0)
        self.assertEqual([item['prefix'] for item in json.loads(output)], ["192.0.2.0/24"])

    def test_resources_requires_scope(self):
        code, output = self.run_cli('resources', *self.inputs)
        self.assertEqual(code, 1)
        self.assertIn("No resources given", output)

        code, output = self.run_cli('resources', *self.inputs, '--all')
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output)['announcements']['total'], 3)

    def test_resources_invalid_scope(self):
        code, output = self.run_cli('resources', *self.inputs, '--scope', '193.0.0.0/16,bogus')
        self.assertEqual(code, 1)
        self.assertIn("Invalid scope entry 'bogus'", output)

    def test_lookup(self):
        code, output = self.run_cli('lookup', *self.inputs, '--', 'AS3333')
        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual(data['resource'], "AS3333")
        self.assertEqual(data['country'], "unknown")
        self.assertEqual(len(data['announcements']), 2)

    def test_missing_input_file(self):
        code, output = self.run_cli('world', '--announcements', str(self.dir / "nope"),
                                    '--vrps', str(self.vrps))
        self.assertEqual(code, 1)
        self.assertIn("File does not exist", output)

    def test_missing_vrps(self):
        code, output = self.run_cli('world', '--announcements', str(self.ris))
        self.assertEqual(code, 1)
        self.assertIn("No VRP file configured", output)

    def test_config_file(self):
        config_path = self.dir / "config.json"
        config_path.write_text(json.dumps({
            "inputs": {"announcement_files": [str(self.ris)], "vrp_file": str(self.vrps)},
            "validation": {"min_peers": 1000},
        }))
        code, output = self.run_cli('world', '--config', str(config_path))
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output)['all']['total'], 0)


class TestCheckScope(CliTestCase):

    def test_valid_scope(self):
        code, output = self.run_cli('check-scope', '193.0.0.0/8,194.0.0.0-194.0.1.3,AS3333')
        self.assertEqual(code, 0)
        self.assertIn("Scope OK: 3 entries", output)
        self.assertIn("Address ranges: 194.0.0.0-194.0.1.3", output)

    def test_invalid_scope(self):
        code, output = self.run_cli('check-scope', '193.0.0.0/8,foo')
        self.assertEqual(code, 1)
        self.assertIn("'foo'", output)

    def test_empty_scope_warns(self):
        code, output = self.run_cli('check-scope', ' ')
        self.assertEqual(code, 0)
        self.assertIn("matches every resource", output)


class TestParser(unittest.TestCase):

    def test_no_command_prints_help(self):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            self.assertEqual(main([]), 1)

    def test_daemon_options(self):
        args = create_parser().parse_args(['daemon', '--port', '9000', '--reload-minutes', '15'])
        self.assertEqual((args.port, args.reload_minutes), (9000, 15))


if __name__ == '__main__':
    unittest.main()
