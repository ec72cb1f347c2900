import io
import os
import unittest
from unittest.mock import patch

from shipyard.config.settings import PipelineSettings
from shipyard.core.errors import ReadinessError, StageError
from shipyard.deploy import command

ENV = {
    "EC2_HOST": "203.0.113.10",
    "EC2_USERNAME": "ubuntu",
    "EC2_SSH_KEY": "-----BEGIN KEY-----\nabcdefghijkl\n-----END KEY-----",
}


@patch.dict(os.environ, ENV, clear=True)
@patch("shipyard.deploy.command.load_settings", return_value=PipelineSettings())
@patch("shipyard.deploy.command.deploy")
class TestMain(unittest.TestCase):
    def setUp(self):
        self.err = io.StringIO()
        patcher = patch("sys.stderr", self.err)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_flags_override_settings(self, mock_deploy, _settings):
        rc = command.main(
            [
                "--descriptor",
                "compose.prod.yml",
                "--remote-dir",
                "/srv/app",
                "--port",
                "2222",
                "--wait",
                "10",
                "--readiness",
                "registry",
                "--health-url",
                "http://app.example/status",
                "-i",
                "/keys/id",
                "--dry-run",
            ]
        )

        self.assertEqual(rc, 0)
        settings, secrets = mock_deploy.call_args.args
        self.assertEqual(settings.descriptor, "compose.prod.yml")
        self.assertEqual(settings.remote_dir, "/srv/app")
        self.assertEqual(settings.ssh_port, 2222)
        self.assertEqual(settings.wait, 10)
        self.assertEqual(settings.readiness, "registry")
        self.assertEqual(settings.health_url, "http://app.example/status")
        self.assertEqual(secrets.host, "203.0.113.10")
        self.assertEqual(
            mock_deploy.call_args.kwargs, {"key_file": "/keys/id", "dry_run": True}
        )

    def test_no_flags_keep_settings(self, mock_deploy, _settings):
        self.assertEqual(command.main([]), 0)
        self.assertEqual(mock_deploy.call_args.args[0], PipelineSettings())
        self.assertEqual(
            mock_deploy.call_args.kwargs, {"key_file": None, "dry_run": False}
        )

    def test_check_health_uses_remote_host(self, mock_deploy, _settings):
        self.assertEqual(command.main(["--check-health"]), 0)
        settings = mock_deploy.call_args.args[0]
        self.assertEqual(settings.health_url, "http://203.0.113.10/status")

    def test_health_flags_are_exclusive(self, mock_deploy, _settings):
        with self.assertRaises(SystemExit) as ctx:
            command.main(["--check-health", "--health-url", "http://x/status"])
        self.assertEqual(ctx.exception.code, 2)
        mock_deploy.assert_not_called()

    def test_stage_error_is_redacted(self, mock_deploy, _settings):
        mock_deploy.side_effect = StageError(
            "deploy",
            "remote command failed with exit code 255; the remote service may be stopped",
            returncode=255,
            tail="ubuntu@203.0.113.10: Permission denied (publickey)",
        )

        rc = command.main([])

        self.assertEqual(rc, 255)
        out = self.err.getvalue()
        self.assertIn("[ERROR] deploy: remote command failed", out)
        self.assertIn("Permission denied", out)
        self.assertNotIn("203.0.113.10", out)
        self.assertNotIn("ubuntu@", out)

    def test_readiness_error_returns_one(self, mock_deploy, _settings):
        mock_deploy.side_effect = ReadinessError("http://x/status not healthy (last: HTTP 503)")
        self.assertEqual(command.main(["--health-url", "http://x/status"]), 1)
        self.assertIn("HTTP 503", self.err.getvalue())


if __name__ == "__main__":
    unittest.main()
