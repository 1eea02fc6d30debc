import unittest

import yaml

from compose_lxc.compose_normalize import rewrite_host_path, sanitize_compose
from compose_lxc.yaml_in import load_yaml

STACK_COMPOSE = """
x-casaos:
  main: plex
  title:
    en_us: Plex
services:
  plex:
    image: linuxserver/plex
    ports:
      - 32400:32400
    environment:
      - PUID=1000
      - TZ=UTC
    volumes:
      - /DATA/AppData/plex/config:/config
      - /DATA/Media/tv:/tv
    x-casaos:
      envs: []
  helper:
    image: busybox
    ports:
      - 9000
      - target: 53
        published: 53
        protocol: udp
    volumes:
      - /DATA/AppData/plex/config:/config:ro
      - type: bind
        source: /DATA/AppData/plex/cache
        target: /cache
      - cache-data:/tmp/cache
      - /scratch
"""


class SanitizeComposeTests(unittest.TestCase):
    def setUp(self):
        self.result = sanitize_compose(STACK_COMPOSE, {}, "8001", "32400")
        self.doc = yaml.safe_load(self.result.text)

    def test_vendor_blocks_removed(self):
        self.assertNotIn("x-casaos", self.doc)
        self.assertNotIn("x-casaos", self.doc["services"]["plex"])
        self.assertNotIn("x-casaos", self.result.text)

    def test_volume_paths_rewritten(self):
        self.assertEqual(
            self.doc["services"]["plex"]["volumes"],
            ["./data/config:/config", "/DATA/Media/tv:/tv"],
        )
        helper_volumes = self.doc["services"]["helper"]["volumes"]
        self.assertEqual(helper_volumes[0], "./data/config:/config:ro")
        self.assertEqual(helper_volumes[1]["source"], "./data/cache")
        self.assertEqual(helper_volumes[2], "cache-data:/tmp/cache")
        self.assertEqual(helper_volumes[3], "/scratch")

    def test_required_volumes_deduplicated_in_order(self):
        self.assertEqual(self.result.volumes, ["./data/config", "/DATA/Media/tv", "./data/cache"])

    def test_only_main_service_ports_replaced(self):
        self.assertEqual(self.doc["services"]["plex"]["ports"], ["8001:32400"])
        helper_ports = self.doc["services"]["helper"]["ports"]
        self.assertEqual(helper_ports[0], "9000")
        self.assertEqual(helper_ports[1], {"target": 53, "published": 53, "protocol": "udp"})

    def test_explicit_main_service_wins(self):
        result = sanitize_compose(STACK_COMPOSE, {}, "8001", "9000", main_service="helper")
        doc = yaml.safe_load(result.text)
        self.assertEqual(doc["services"]["helper"]["ports"], ["8001:9000"])
        self.assertEqual(doc["services"]["plex"]["ports"], ["32400:32400"])

    def test_environment_untouched_without_overrides(self):
        self.assertEqual(self.doc["services"]["plex"]["environment"], ["PUID=1000", "TZ=UTC"])
        self.assertNotIn("environment", self.doc["services"]["helper"])

    def test_environment_overrides_merge(self):
        result = sanitize_compose(STACK_COMPOSE, {"TZ": "Europe/Berlin", "NEW": "1"}, "8001", "32400")
        doc = yaml.safe_load(result.text)
        self.assertEqual(
            doc["services"]["plex"]["environment"],
            {"PUID": "1000", "TZ": "Europe/Berlin", "NEW": "1"},
        )
        self.assertEqual(doc["services"]["helper"]["environment"], {"TZ": "Europe/Berlin", "NEW": "1"})

    def test_sanitizing_twice_is_stable(self):
        overrides = {"TZ": "UTC", "DB_PASSWORD": "__AUTO_GEN_DB_PASSWORD__"}
        once = sanitize_compose(STACK_COMPOSE, overrides, "8001", "32400", main_service="plex")
        twice = sanitize_compose(once.text, overrides, "8001", "32400", main_service="plex")
        self.assertEqual(once.text, twice.text)
        self.assertEqual(once.volumes, twice.volumes)

    def test_unparseable_input_passes_through(self):
        for text in ("this is: [not yaml", "just words", "name: no-services\n"):
            result = sanitize_compose(text, {"A": "1"}, "80", "80")
            self.assertEqual(result.text, text)
            self.assertEqual(result.volumes, [])

    def test_long_values_are_not_wrapped(self):
        value = " ".join(["word"] * 100)
        result = sanitize_compose("services:\n  app:\n    image: x\n", {"LONG": value}, "", "")
        self.assertIn(f"LONG: {value}\n", result.text)

    def test_multiline_values_use_block_style(self):
        compose = yaml.safe_dump({"services": {"app": {"image": "x", "command": "line one\nline two"}}})
        result = sanitize_compose(compose, {}, "", "")
        self.assertIn("command: |-", result.text)
        self.assertEqual(yaml.safe_load(result.text)["services"]["app"]["command"], "line one\nline two")

    def test_anchors_are_expanded(self):
        compose = (
            "x-env: &env\n  A: '1'\n"
            "services:\n"
            "  one:\n    image: x\n    environment: *env\n"
            "  two:\n    image: x\n    environment: *env\n"
        )
        result = sanitize_compose(compose, {"B": "2"}, "", "")
        self.assertNotIn("*env", result.text)
        self.assertNotIn("&", result.text)
        doc = yaml.safe_load(result.text)
        self.assertEqual(doc["services"]["two"]["environment"], {"A": "1", "B": "2"})

DNS_COMPOSE = """
services:
  web:
    image: nginx
    ports:
      - 8080:80
  dns:
    image: pihole/pihole
    ports:
      - 53:53
      - 22:22
    environment:
      ENABLE_IPV6: on
      UMASK: 022
      WEB_PORT: 8081
"""


class ScalarPreservationTests(unittest.TestCase):
    def setUp(self):
        self.result = sanitize_compose(DNS_COMPOSE, {}, "8001", "80")
        self.doc = load_yaml(self.result.text)

    def test_secondary_service_ports_keep_their_text(self):
        self.assertEqual(self.doc["services"]["dns"]["ports"], ["53:53", "22:22"])
        self.assertEqual(self.doc["services"]["web"]["ports"], ["8001:80"])

    def test_environment_scalars_keep_their_text(self):
        env = self.doc["services"]["dns"]["environment"]
        self.assertEqual(env, {"ENABLE_IPV6": "on", "UMASK": "022", "WEB_PORT": 8081})
        # The output must read the same under a YAML 1.1 loader.
        self.assertEqual(yaml.safe_load(self.result.text)["services"]["dns"]["environment"]["UMASK"], "022")
        self.assertEqual(yaml.safe_load(self.result.text)["services"]["dns"]["ports"], ["53:53", "22:22"])


class UnserializableComposeTests(unittest.TestCase):
    def test_self_referencing_anchor_passes_through(self):
        compose = "services:\n  web: &w\n    image: x\n    labels:\n      self: *w\n"
        with self.assertLogs("compose_lxc.compose_normalize", level="WARNING"):
            result = sanitize_compose(compose, {}, "1", "1")
        self.assertEqual(result.text, compose)
        self.assertEqual(result.volumes, [])


class RewriteHostPathTests(unittest.TestCase):
    def test_only_root_plus_one_segment_is_replaced(self):
        self.assertEqual(rewrite_host_path("/DATA/AppData/plex/config"), "./data/config")
        self.assertEqual(rewrite_host_path("/DATA/AppData/$AppID"), "./data")
        self.assertEqual(rewrite_host_path("/DATA/AppData/$AppID/a/b"), "./data/a/b")
        self.assertEqual(rewrite_host_path("/DATA/AppDataX/plex"), "/DATA/AppDataX/plex")
        self.assertEqual(rewrite_host_path("/srv/DATA/AppData/plex"), "/srv/DATA/AppData/plex")
        self.assertEqual(rewrite_host_path("/DATA/AppData"), "/DATA/AppData")


if __name__ == "__main__":
    unittest.main()
