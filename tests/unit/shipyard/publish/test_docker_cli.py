import io
import subprocess
import unittest
from unittest.mock import patch

from shipyard.config.model import ImageRef
from shipyard.publish.docker import DockerCLI

IMAGE = ImageRef.parse("alice/flask-app:latest")


class TestDockerCLI(unittest.TestCase):
    def setUp(self):
        self._stdout = patch("sys.stdout", new_callable=io.StringIO)
        self.stdout = self._stdout.start()
        self.addCleanup(self._stdout.stop)

    @patch("shipyard.publish.docker.run_streaming")
    def test_build_command_is_streamed(self, mock_stream):
        mock_stream.return_value = subprocess.CompletedProcess([], 0)

        DockerCLI().build(
            IMAGE,
            context="app",
            dockerfile="app/Dockerfile",
            no_cache=True,
            build_args={"VERSION": "1"},
        )

        self.assertEqual(
            mock_stream.call_args.args[0],
            [
                "docker",
                "build",
                "-t",
                "alice/flask-app:latest",
                "-f",
                "app/Dockerfile",
                "--no-cache",
                "--build-arg",
                "VERSION=1",
                "app",
            ],
        )
        self.assertTrue(mock_stream.call_args.kwargs["check"])

    @patch("subprocess.run")
    def test_login_passes_password_on_stdin_only(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0)

        DockerCLI(redact=lambda s: s.replace("alice", "***")).login(
            "alice", "hunter2", registry="ghcr.io"
        )

        cmd = mock_run.call_args.args[0]
        self.assertEqual(cmd, ["docker", "login", "-u", "alice", "--password-stdin", "ghcr.io"])
        self.assertNotIn("hunter2", cmd)
        self.assertEqual(mock_run.call_args.kwargs["input"], "hunter2")
        self.assertNotIn("hunter2", self.stdout.getvalue())
        self.assertNotIn("alice", self.stdout.getvalue())

    @patch("subprocess.run")
    def test_logout_targets_registry(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0)
        docker = DockerCLI()

        docker.logout()
        docker.logout("ghcr.io")

        self.assertEqual(mock_run.call_args_list[0].args[0], ["docker", "logout"])
        self.assertEqual(mock_run.call_args_list[1].args[0], ["docker", "logout", "ghcr.io"])

    @patch("shipyard.publish.docker.run_streaming")
    def test_push_failure_raises(self, mock_stream):
        mock_stream.side_effect = subprocess.CalledProcessError(1, ["docker", "push"])
        with self.assertRaises(subprocess.CalledProcessError):
            DockerCLI().push(IMAGE)
        self.assertEqual(
            mock_stream.call_args.args[0], ["docker", "push", "alice/flask-app:latest"]
        )

    @patch("subprocess.run")
    def test_manifest_probe_uses_return_code(self, mock_run):
        mock_run.side_effect = [
            subprocess.CompletedProcess([], 0, stdout="{}", stderr=""),
            subprocess.CompletedProcess([], 1, stdout="", stderr="no such manifest"),
        ]
        docker = DockerCLI()

        self.assertTrue(docker.manifest_exists(IMAGE))
        self.assertFalse(docker.manifest_exists(IMAGE))
        self.assertEqual(
            mock_run.call_args_list[1].args[0],
            ["docker", "manifest", "inspect", "alice/flask-app:latest"],
        )
        self.assertFalse(mock_run.call_args.kwargs["check"])


if __name__ == "__main__":
    unittest.main()
