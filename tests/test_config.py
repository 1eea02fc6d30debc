import tempfile
import unittest
from pathlib import Path

from compose_lxc.config import config_for_app, defaults_from_env, load_global_defaults
from compose_lxc.models import TargetPlatform
from compose_lxc.parser import normalize

COMPOSE = """
services:
  web:
    image: nginx:1.25
    ports:
      - 8081:80
    environment:
      SITE_TITLE: Demo
"""


class GlobalDefaultsTests(unittest.TestCase):
    def test_builtin_defaults(self):
        settings = defaults_from_env({})
        self.assertEqual(settings["ct_id"], 105)
        self.assertEqual(settings["storage_pool"], "local-lvm")
        self.assertTrue(settings["use_dhcp"])

    def test_environment_overrides(self):
        settings = defaults_from_env(
            {"DEFAULT_CT_ID": "200", "DEFAULT_USE_DHCP": "false", "DEFAULT_BRIDGE": "vmbr1"}
        )
        self.assertEqual(settings["ct_id"], 200)
        self.assertFalse(settings["use_dhcp"])
        self.assertEqual(settings["bridge"], "vmbr1")

    def test_bad_number_keeps_default(self):
        with self.assertLogs("compose_lxc.config", level="WARNING"):
            settings = defaults_from_env({"DEFAULT_RAM_SIZE": "lots"})
        self.assertEqual(settings["ram_mb"], 2048)

    def test_yaml_file_overrides_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "defaults.yml"
            path.write_text("ct_id: 300\ncpu_cores: 4\n", encoding="utf-8")
            settings = load_global_defaults(path, environ={"DEFAULT_CT_ID": "200"})
        self.assertEqual(settings["ct_id"], 300)
        self.assertEqual(settings["cpu_cores"], 4)

    def test_yaml_file_rejects_unknown_keys(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "defaults.yml"
            path.write_text("cpu: 4\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_global_defaults(path, environ={})

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_global_defaults(Path("/nonexistent/defaults.yml"), environ={})


class ConfigForAppTests(unittest.TestCase):
    def test_seeded_from_app(self):
        app = normalize(COMPOSE, app_id="demo")
        config = config_for_app(app, defaults_from_env({}), target=TargetPlatform.PORTAINER)
        self.assertEqual(config.app_id, "demo")
        self.assertEqual(config.app_name, "demo")
        self.assertEqual(config.target, TargetPlatform.PORTAINER)
        self.assertEqual((config.host_port, config.container_port), ("8081", "80"))
        self.assertEqual(config.volume_path, "./data")
        self.assertEqual(config.env_vars, {"SITE_TITLE": "Demo"})
        self.assertEqual(config.compose_content, COMPOSE)
        self.assertEqual(config.ct_id, 105)
        self.assertIsNone(config.matched_recipe)


if __name__ == "__main__":
    unittest.main()
