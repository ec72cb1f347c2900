import io
import unittest
from unittest.mock import patch

from shipyard.config.model import ImageRef
from shipyard.config.secrets import SecretSet
from shipyard.config.settings import PipelineSettings
from shipyard.core.errors import StageError
from shipyard.pipeline import command
from shipyard.pipeline.runner import run_pipeline

SETTINGS = PipelineSettings(image="alice/flask-app:latest")
SECRETS = SecretSet(registry_username="alice", registry_password="pw")


class TestBuildStages(unittest.TestCase):
    def setUp(self):
        patcher = patch("sys.stdout", new_callable=io.StringIO)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_deploy_is_gated_on_publish(self):
        stages = command.build_stages(SETTINGS, SECRETS)
        self.assertEqual([s.name for s in stages], ["publish", "deploy"])
        self.assertEqual(stages[1].needs, ("publish",))

    @patch("shipyard.pipeline.command.deploy")
    @patch("shipyard.pipeline.command.publish")
    def test_published_image_is_handed_to_deploy(self, mock_publish, mock_deploy):
        image = ImageRef.parse("alice/flask-app:latest")
        mock_publish.return_value = image

        run_pipeline(command.build_stages(SETTINGS, SECRETS, key_file="/k"))

        mock_deploy.assert_called_once_with(
            SETTINGS, SECRETS, image=image, key_file="/k", dry_run=False
        )

    @patch("shipyard.pipeline.command.deploy")
    @patch("shipyard.pipeline.command.publish")
    def test_failed_publish_skips_deploy(self, mock_publish, mock_deploy):
        mock_publish.side_effect = StageError("publish", "docker build failed", 1)
        results = run_pipeline(command.build_stages(SETTINGS, SECRETS))
        mock_deploy.assert_not_called()
        self.assertEqual(results[1].status, "skipped")

    @patch("shipyard.pipeline.command.deploy")
    def test_only_deploy_has_no_dependency(self, mock_deploy):
        stages = command.build_stages(SETTINGS, SECRETS, only="deploy")
        self.assertEqual([(s.name, s.needs) for s in stages], [("deploy", ())])
        run_pipeline(stages)
        mock_deploy.assert_called_once()

    @patch("shipyard.pipeline.command.deploy")
    @patch("shipyard.pipeline.command.publish")
    def test_dry_run_never_publishes(self, mock_publish, mock_deploy):
        run_pipeline(command.build_stages(SETTINGS, SECRETS, dry_run=True))
        mock_publish.assert_not_called()
        self.assertTrue(mock_deploy.call_args.kwargs["dry_run"])


class TestMain(unittest.TestCase):
    @patch("shipyard.pipeline.command.run_pipeline")
    @patch("shipyard.pipeline.command.load_settings", return_value=SETTINGS)
    def test_exit_code_from_results(self, _settings, mock_run):
        from shipyard.pipeline.runner import StageResult

        mock_run.return_value = [
            StageResult("publish", "failed", error="x", returncode=4),
            StageResult("deploy", "skipped"),
        ]
        with patch("sys.stdout", new_callable=io.StringIO):
            rc = command.main([])
        self.assertEqual(rc, 4)


if __name__ == "__main__":
    unittest.main()
