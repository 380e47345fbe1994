import os
import tempfile
import unittest
from pathlib import Path

from auto_provisioner.local import LocalSession
from auto_provisioner.utils.logging import mask_secret


@unittest.skipUnless(os.path.exists("/bin/bash"), "requires bash")
class LocalSessionTests(unittest.TestCase):

    def test_captures_output_and_status(self) -> None:
        result = LocalSession().run("echo hello; echo oops >&2; exit 3")
        self.assertEqual(result.stdout.strip(), "hello")
        self.assertEqual(result.stderr.strip(), "oops")
        self.assertEqual(result.exit_status, 3)
        self.assertFalse(result.ok)

    def test_cwd_and_env_are_per_command(self) -> None:
        session = LocalSession()
        before = os.getcwd()
        with tempfile.TemporaryDirectory() as tmp:
            result = session.run('echo "$PWD:$RELEASE_NAME"', cwd=tmp, env={"RELEASE_NAME": "v1"})
            self.assertTrue(result.ok)
            self.assertEqual(
                Path(result.stdout.strip().split(":")[0]).resolve(), Path(tmp).resolve()
            )
            self.assertTrue(result.stdout.strip().endswith(":v1"))
        self.assertEqual(os.getcwd(), before)
        self.assertNotIn("RELEASE_NAME", os.environ)

    def test_missing_working_directory(self) -> None:
        result = LocalSession().run("true", cwd="/nonexistent/directory")
        self.assertFalse(result.ok)


class MaskSecretTests(unittest.TestCase):

    def test_masks_every_character(self) -> None:
        self.assertEqual(mask_secret("s3cret"), "******")
        self.assertEqual(mask_secret(None), "")


if __name__ == "__main__":
    unittest.main()
