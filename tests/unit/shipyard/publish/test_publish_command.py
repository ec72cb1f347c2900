import argparse
import io
import os
import subprocess
import unittest
from unittest.mock import patch

from shipyard.config.settings import PipelineSettings
from shipyard.core.errors import SecretError, StageError
from shipyard.publish import command

SETTINGS = PipelineSettings(image="alice/flask-app:latest")
ENV = {"DOCKER_USERNAME": "alice", "DOCKER_PASSWORD": "s3cr3t-token"}


class TestParseBuildArgs(unittest.TestCase):
    def test_pairs(self):
        self.assertEqual(
            command.parse_build_args(["VERSION=1.2", "EMPTY=", "URL=a=b"]),
            {"VERSION": "1.2", "EMPTY": "", "URL": "a=b"},
        )

    def test_missing_separator(self):
        with self.assertRaises(argparse.ArgumentTypeError):
            command.parse_build_args(["VERSION"])

    def test_missing_key(self):
        with self.assertRaises(argparse.ArgumentTypeError):
            command.parse_build_args(["=1"])


@patch.dict(os.environ, ENV, clear=True)
@patch("shipyard.publish.command.load_settings", return_value=SETTINGS)
@patch("shipyard.publish.command.publish")
class TestMain(unittest.TestCase):
    def setUp(self):
        self.err = io.StringIO()
        patcher = patch("sys.stderr", self.err)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_flags_reach_settings_and_publish(self, mock_publish, _settings):
        rc = command.main(
            [
                "--image",
                "bob/app",
                "--context",
                "src",
                "-f",
                "src/Dockerfile",
                "-t",
                "v2",
                "--also-tag",
                "stable",
                "--no-cache",
                "--no-push",
                "--build-arg",
                "VERSION=2",
                "--skip-check",
            ]
        )

        self.assertEqual(rc, 0)
        settings, secrets = mock_publish.call_args.args
        self.assertEqual(settings.image, "bob/app")
        self.assertEqual(settings.context, "src")
        self.assertEqual(settings.dockerfile, "src/Dockerfile")
        self.assertEqual(secrets.registry_username, "alice")
        self.assertEqual(
            mock_publish.call_args.kwargs,
            {
                "tag": "v2",
                "extra_tags": ["stable"],
                "push": False,
                "no_cache": True,
                "build_args": {"VERSION": "2"},
                "check_descriptor": False,
            },
        )

    def test_defaults_keep_settings(self, mock_publish, _settings):
        self.assertEqual(command.main([]), 0)
        settings = mock_publish.call_args.args[0]
        self.assertEqual(settings, SETTINGS)
        self.assertTrue(mock_publish.call_args.kwargs["push"])
        self.assertTrue(mock_publish.call_args.kwargs["check_descriptor"])

    def test_bad_build_arg_is_a_usage_error(self, mock_publish, _settings):
        with self.assertRaises(SystemExit) as ctx:
            command.main(["--build-arg", "VERSION"])
        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("KEY=VALUE", self.err.getvalue())
        mock_publish.assert_not_called()

    def test_stage_error_exit_code_and_redaction(self, mock_publish, _settings):
        mock_publish.side_effect = StageError(
            "publish",
            "docker push failed with exit code 7",
            returncode=7,
            tail="denied: token s3cr3t-token rejected",
        )

        rc = command.main([])

        self.assertEqual(rc, 7)
        out = self.err.getvalue()
        self.assertIn("[ERROR] publish: docker push failed", out)
        self.assertIn("denied: token *** rejected", out)
        self.assertNotIn("s3cr3t-token", out)

    def test_missing_secret_returns_one(self, mock_publish, _settings):
        mock_publish.side_effect = SecretError("Missing DOCKER_PASSWORD")
        self.assertEqual(command.main([]), 1)
        self.assertIn("DOCKER_PASSWORD", self.err.getvalue())

    def test_unwrapped_child_failure_keeps_status(self, mock_publish, _settings):
        mock_publish.side_effect = subprocess.CalledProcessError(5, ["docker"])
        self.assertEqual(command.main([]), 5)


if __name__ == "__main__":
    unittest.main()
