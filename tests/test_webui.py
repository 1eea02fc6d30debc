import unittest

from fastapi.testclient import TestClient

from compose_lxc.webui import app

COMPOSE = """
services:
  plex:
    image: linuxserver/plex
    ports:
      - 32400:32400
x-casaos:
  main: plex
  title:
    en_us: Plex
"""


class WebApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)
        response = self.client.post("/api/normalize", json={"compose": COMPOSE, "app_id": "plex"})
        self.assertEqual(response.status_code, 200)
        self.record = response.json()
        self.config = {"app_id": "plex", "app_name": "Plex", "compose_content": COMPOSE}

    def test_index(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Compose to LXC", response.text)

    def test_normalize(self):
        self.assertEqual(self.record["id"], "plex")
        self.assertEqual(self.record["name"], "Plex")
        self.assertEqual(self.record["port_map"], "32400:32400")

    def test_normalize_rejects_non_apps(self):
        response = self.client.post("/api/normalize", json={"compose": "just words"})
        self.assertEqual(response.status_code, 400)

    def test_seed_config(self):
        response = self.client.post("/api/config", json={"app": self.record, "target": "portainer"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["target"], "portainer")
        self.assertEqual(body["host_port"], "32400")

    def test_generate_script(self):
        response = self.client.post("/api/generate", json={"app": self.record, "config": self.config})
        self.assertEqual(response.status_code, 200)
        self.assertIn('pct create "$CTID"', response.text)
        self.assertIn('filename="install-plex.sh"', response.headers["content-disposition"])

    def test_one_liner(self):
        response = self.client.post("/api/one-liner", json={"app": self.record, "config": self.config})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.text.startswith('bash -c "$(echo '))

    def test_one_liner_rejected_for_stack_files(self):
        config = {**self.config, "target": "dockge"}
        response = self.client.post("/api/one-liner", json={"app": self.record, "config": config})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
