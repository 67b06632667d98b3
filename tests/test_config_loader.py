import unittest
import os
import sys
import tempfile
import textwrap

# This allows the script to be run from anywhere and still find the smpsreader package
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, os.pardir))
sys.path.append(PROJECT_ROOT)

from smpsreader.config_loader import ConfigLoader
import run

TOY_DIR = os.path.join(PROJECT_ROOT, "smps_data", "toy")


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text, name="config.yaml"):
        path = os.path.join(self.tmp, name)
        with open(path, "w") as f:
            f.write(textwrap.dedent(text))
        return path

    def test_example_config(self):
        config = ConfigLoader.load_yaml_config(os.path.join(PROJECT_ROOT, "configs", "example_config.yaml"))
        self.assertTrue(config["smps_core_file"].endswith("toy.cor"))
        self.assertTrue(os.path.exists(config["smps_sto_file"]))

    def test_relative_output_paths_follow_config_directory(self):
        path = self._write(f"""
            input_files:
              smps_base_name: {os.path.join(TOY_DIR, 'toy')}
            output:
              sof_file: out/toy.sof.json
              hdf5_file: {os.path.join(self.tmp, 'abs.h5')}
            logging:
              log_file: run.log
            """)
        config = ConfigLoader.load_yaml_config(path)
        self.assertEqual(config["sof_file"], os.path.join(self.tmp, "out", "toy.sof.json"))
        self.assertEqual(config["hdf5_file"], os.path.join(self.tmp, "abs.h5"))
        self.assertEqual(config["log_file"], os.path.join(self.tmp, "run.log"))

    def test_example_config_writes_beside_config(self):
        config = ConfigLoader.load_yaml_config(os.path.join(PROJECT_ROOT, "configs", "example_config.yaml"))
        self.assertEqual(config["sof_file"], os.path.join(PROJECT_ROOT, "configs", "toy.sof.json"))

    def test_base_name_expansion_and_defaults(self):
        path = self._write(f"""
            input_files:
              smps_base_name: {os.path.join(TOY_DIR, 'toy')}
            """)
        config = ConfigLoader.load_yaml_config(path)
        self.assertEqual(config["smps_time_file"], os.path.join(TOY_DIR, "toy.tim"))
        self.assertTrue(config["print_summary"])
        self.assertEqual(config["log_level"], "INFO")
        self.assertIsNone(config["sof_file"])

    def test_explicit_files_override_base_name(self):
        path = self._write(f"""
            input_files:
              smps_base_name: {os.path.join(TOY_DIR, 'toy')}
              smps_sto_file: {os.path.join(TOY_DIR, 'toy_indep.sto')}
            output:
              print_summary: "no"
            logging:
              log_level: debug
            """)
        config = ConfigLoader.load_yaml_config(path)
        self.assertEqual(config["smps_sto_file"], os.path.join(TOY_DIR, "toy_indep.sto"))
        self.assertFalse(config["print_summary"])
        self.assertEqual(config["log_level"], "DEBUG")

    def test_missing_input_files(self):
        path = self._write("""
            metadata:
              instance_name: empty
            """)
        with self.assertRaises(ValueError):
            ConfigLoader.load_yaml_config(path)

    def test_nonexistent_input_file(self):
        path = self._write("""
            input_files:
              smps_base_name: nowhere/toy
            """)
        with self.assertRaises(FileNotFoundError):
            ConfigLoader.load_yaml_config(path)

    def test_unknown_section(self):
        path = self._write(f"""
            input_files:
              smps_base_name: {os.path.join(TOY_DIR, 'toy')}
            solver:
              threads: 4
            """)
        with self.assertRaises(ValueError):
            ConfigLoader.load_yaml_config(path)

    def test_invalid_log_level(self):
        path = self._write(f"""
            input_files:
              smps_base_name: {os.path.join(TOY_DIR, 'toy')}
            logging:
              log_level: loud
            """)
        with self.assertRaises(ValueError):
            ConfigLoader.load_yaml_config(path)

    def test_not_yaml(self):
        path = self._write("{}", name="config.json")
        with self.assertRaises(ValueError):
            ConfigLoader.load_yaml_config(path)

    def test_missing_config(self):
        with self.assertRaises(FileNotFoundError):
            ConfigLoader.load_yaml_config(os.path.join(self.tmp, "absent.yaml"))


class TestCommandLine(unittest.TestCase):

    def test_export_sof(self):
        with tempfile.TemporaryDirectory() as tmp:
            output = os.path.join(tmp, "toy.sof.json")
            status = run.main(["export_sof", "--base", os.path.join(TOY_DIR, "toy"), "--output", output])
            self.assertEqual(status, 0)
            self.assertTrue(os.path.exists(output))

    def test_run_from_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = os.path.join(tmp, "config.yaml")
            with open(config_path, "w") as f:
                f.write(textwrap.dedent(f"""
                    input_files:
                      smps_base_name: {os.path.join(TOY_DIR, 'toy')}
                    output:
                      print_summary: false
                      hdf5_file: {os.path.join(tmp, 'toy.h5')}
                    """))
            status = run.main(["run", "--config", config_path])
            self.assertEqual(status, 0)
            self.assertTrue(os.path.exists(os.path.join(tmp, "toy.h5")))


if __name__ == "__main__":
    unittest.main()
