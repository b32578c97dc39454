import os
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest
from unittest import mock

from jobtrigger.cli import main
from jobtrigger.config import build_config, load_config, read_env_inputs


class ConfigTest(unittest.TestCase):
    def test_load_config(self) -> None:
        with TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "jobtrigger.yaml"
            config_path.write_text(
                """
url: "https://jenkins.example.com/"
user_name: alice
api_token: secret
job_name: deploy
parameter: '{"ENV": "staging"}'
wait: "true"
timeout: 600
http:
  verify_tls: false
""".strip(),
                encoding="utf-8",
            )
            config = load_config(config_path, environ={})
            self.assertEqual(config.url, "https://jenkins.example.com")
            self.assertEqual(config.parameters, {"ENV": "staging"})
            self.assertTrue(config.wait)
            self.assertEqual(config.timeout_seconds, 600)
            self.assertEqual(config.poll.interval_seconds, 10)
            self.assertEqual(config.poll.success_threshold, 3)
            self.assertEqual(config.poll.failure_threshold, 10)
            self.assertFalse(config.http.verify_tls)
            self.assertEqual(config.job_request.job_name, "deploy")

    def test_env_inputs_override_file_and_flags_override_env(self) -> None:
        environ = {
            "INPUT_URL": "https://ci",
            "INPUT_USER_NAME": "bob",
            "INPUT_API_TOKEN": "token",
            "INPUT_JOB_NAME": "build",
            "INPUT_WAIT": "false",
            "INPUT_TIMEOUT": "",
        }
        self.assertNotIn("timeout", read_env_inputs(environ))
        config = load_config(environ=environ, overrides={"job_name": "release", "wait": True, "timeout": None})
        self.assertEqual(config.job_name, "release")
        self.assertEqual(config.user_name, "bob")
        self.assertTrue(config.wait)
        self.assertEqual(config.timeout_seconds, 3600)

    def test_missing_required_key(self) -> None:
        with self.assertRaisesRegex(ValueError, "root.api_token"):
            load_config(environ={"INPUT_URL": "https://ci", "INPUT_USER_NAME": "a", "INPUT_JOB_NAME": "j"})

    def test_null_poll_interval_is_a_config_error(self) -> None:
        with TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "jobtrigger.yaml"
            config_path.write_text(
                """
url: "https://ci"
user_name: alice
api_token: secret
job_name: deploy
poll:
  interval_seconds:
http:
  request_timeout_seconds: [1, 2]
""".strip(),
                encoding="utf-8",
            )
            with self.assertRaisesRegex(ValueError, "poll.interval_seconds"):
                load_config(config_path, environ={})
            with mock.patch.dict(os.environ, {}, clear=True):
                self.assertEqual(main(["--config", str(config_path)]), 2)

    def test_non_numeric_request_timeout_names_key(self) -> None:
        raw = {"url": "https://ci", "user_name": "a", "api_token": "t", "job_name": "j", "http": {"request_timeout_seconds": {"a": 1}}}
        with self.assertRaisesRegex(ValueError, "http.request_timeout_seconds"):
            build_config(raw)

    def test_rejects_bad_timeout(self) -> None:
        environ = {
            "INPUT_URL": "https://ci",
            "INPUT_USER_NAME": "a",
            "INPUT_API_TOKEN": "t",
            "INPUT_JOB_NAME": "j",
            "INPUT_TIMEOUT": "0",
        }
        with self.assertRaises(ValueError):
            load_config(environ=environ)


if __name__ == "__main__":
    unittest.main()
