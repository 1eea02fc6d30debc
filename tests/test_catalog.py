import json
import tempfile
import unittest
from pathlib import Path

from compose_lxc.catalog import discover_apps, folder_entry, load_app_folder, scan_folders

PLEX_COMPOSE = """
services:
  plex:
    image: linuxserver/plex
    ports:
      - 32400:32400
"""

UMBREL_MANIFEST = """
id: nostr-relay
name: Nostr Relay
port: 4848
"""

UMBREL_COMPOSE = """
services:
  app_proxy:
    environment:
      APP_PORT: 8080
  web:
    image: relay
"""


class CatalogTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        plex = self.root / "Apps" / "plex"
        plex.mkdir(parents=True)
        (plex / "docker-compose.yml").write_text(PLEX_COMPOSE, encoding="utf-8")
        (plex / "config.json").write_text(json.dumps({"name": "Plex Media Server"}), encoding="utf-8")
        (plex / "icon.png").write_bytes(b"\x89PNG")

        nostr = self.root / "Apps" / "nostr"
        nostr.mkdir()
        (nostr / "umbrel-app.yml").write_text(UMBREL_MANIFEST, encoding="utf-8")
        (nostr / "docker-compose.yml").write_text(UMBREL_COMPOSE, encoding="utf-8")

        broken = self.root / "Apps" / "broken"
        broken.mkdir()
        (broken / "docker-compose.yml").write_text("name: nothing\n", encoding="utf-8")

        docs = self.root / "docs"
        docs.mkdir()
        (docs / "README.md").write_text("# docs\n", encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_scan_only_keeps_folders_with_compose(self):
        names = sorted(entry.folder.name for entry in scan_folders(self.root))
        self.assertEqual(names, ["broken", "nostr", "plex"])

    def test_discover_apps_skips_invalid_folders(self):
        apps = {app.id: app for app in discover_apps(self.root)}
        self.assertEqual(sorted(apps), ["nostr-relay", "plex"])
        self.assertEqual(apps["plex"].name, "Plex Media Server")
        self.assertTrue(apps["plex"].icon.endswith("icon.png"))
        self.assertEqual(apps["nostr-relay"].port_map, "4848:8080")
        self.assertEqual(apps["nostr-relay"].main_service, "web")

    def test_icon_base_url(self):
        entry = folder_entry(self.root / "Apps" / "plex")
        app = load_app_folder(entry, icon_base_url="https://raw.example.com/Apps/plex/")
        self.assertEqual(app.icon, "https://raw.example.com/Apps/plex/icon.png")

    def test_missing_root(self):
        with self.assertRaises(FileNotFoundError):
            discover_apps(self.root / "missing")


if __name__ == "__main__":
    unittest.main()
