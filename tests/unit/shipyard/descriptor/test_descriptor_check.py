import unittest

from shipyard.config.model import ImageRef
from shipyard.descriptor.check import check_image_consistency
from shipyard.descriptor.compose import parse_descriptor


def _doc(image: str):
    return parse_descriptor(f"services:\n  web:\n    image: {image}\n")


class TestImageConsistency(unittest.TestCase):
    def test_matching_tag_is_consistent(self):
        problems = check_image_consistency(
            _doc("alice/flask-app:latest"), ImageRef.parse("alice/flask-app")
        )
        self.assertEqual(problems, [])

    def test_implicit_latest_matches(self):
        self.assertEqual(
            check_image_consistency(_doc("alice/flask-app"), ImageRef.parse("alice/flask-app:latest")),
            [],
        )

    def test_tag_mismatch_reported(self):
        problems = check_image_consistency(
            _doc("alice/flask-app:v1"), ImageRef.parse("alice/flask-app:latest")
        )
        self.assertEqual(len(problems), 1)
        self.assertIn("'v1'", problems[0])
        self.assertIn("'latest'", problems[0])

    def test_other_repository_reported(self):
        problems = check_image_consistency(
            _doc("bob/other:latest"), ImageRef.parse("alice/flask-app")
        )
        self.assertEqual(len(problems), 1)
        self.assertIn("No service references", problems[0])
        self.assertIn("web=bob/other:latest", problems[0])


if __name__ == "__main__":
    unittest.main()
