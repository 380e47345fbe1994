"""Tests for environment file handling and credential reconciliation."""

import os
import stat
import tempfile
import unittest
from pathlib import Path

import pytest

from auto_provisioner.credentials import (
    ConfigFile,
    ConnectionSettings,
    Credential,
    CredentialReconciler,
    database_name_for,
)
from auto_provisioner.errors import CredentialStoreError, CredentialValidationError

CANONICAL = [
    "DB_CONNECTION=mysql",
    "DB_HOST=127.0.0.1",
    "DB_PORT=3306",
    "DB_DATABASE=d1",
    "DB_USERNAME=u1",
    "DB_PASSWORD=p1",
]


class ReconcileTests(unittest.TestCase):

    def setUp(self) -> None:
        self.reconciler = CredentialReconciler()
        self.credential = Credential(user="u1", password="p1", database="d1")

    def test_replaces_managed_lines_and_keeps_foreign_ones(self) -> None:
        existing = ConfigFile([
            "FOO=bar",
            "DB_USERNAME=old_user",
            "# database settings",
            "DB_HOST=localhost",
            "",
            "APP_KEY=base64:abc=",
            "DB_PASSWORD=old",
        ])

        merged = self.reconciler.reconcile(existing, self.credential)

        self.assertEqual(
            merged.lines,
            ["FOO=bar", "# database settings", "", "APP_KEY=base64:abc="] + CANONICAL,
        )

    def test_exactly_one_line_per_managed_key(self) -> None:
        existing = ConfigFile(["FOO=bar", "DB_PASSWORD=a", "DB_PASSWORD=b", "export DB_HOST=x"])
        merged = self.reconciler.reconcile(existing, self.credential)
        keys = merged.keys()
        for key in ("DB_CONNECTION", "DB_HOST", "DB_PORT", "DB_DATABASE", "DB_USERNAME", "DB_PASSWORD"):
            self.assertEqual(keys.count(key), 1)
        self.assertEqual(merged.lines[0], "FOO=bar")

    def test_absent_file_yields_only_managed_lines(self) -> None:
        merged = self.reconciler.reconcile(None, self.credential)
        self.assertEqual(merged.lines, CANONICAL)

    def test_reconcile_is_idempotent(self) -> None:
        existing = ConfigFile(["FOO=bar", "DB_USERNAME=old"])
        once = self.reconciler.reconcile(existing, self.credential)
        twice = self.reconciler.reconcile(once, self.credential)
        self.assertEqual(once.render(), twice.render())

    def test_incomplete_credential_rejected(self) -> None:
        with self.assertRaises(CredentialValidationError):
            self.reconciler.reconcile(None, Credential(user="u1", password="", database="d1"))

    def test_connection_settings_used(self) -> None:
        reconciler = CredentialReconciler(settings=ConnectionSettings(host="db.internal", port=3307))
        merged = reconciler.reconcile(None, self.credential)
        self.assertIn("DB_HOST=db.internal", merged.lines)
        self.assertIn("DB_PORT=3307", merged.lines)

    def test_foreign_mysql_keys_are_not_managed(self) -> None:
        existing = ConfigFile(["MYSQL_USER=bob", "DATABASE_URL=mysql://x"])
        merged = self.reconciler.reconcile(existing, self.credential)
        self.assertEqual(merged.lines[:2], ["MYSQL_USER=bob", "DATABASE_URL=mysql://x"])


class PersistTests(unittest.TestCase):

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.env_path = self.root / ".env"
        self.reconciler = CredentialReconciler()
        self.credential = Credential(user="u1", password="p1", database="d1")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_persist_twice_is_byte_identical(self) -> None:
        self.env_path.write_text("FOO=bar\nDB_USERNAME=old\n", encoding="utf-8")
        self.reconciler.persist(self.env_path, self.credential)
        first = self.env_path.read_bytes()
        self.reconciler.persist(self.env_path, self.credential)
        self.assertEqual(self.env_path.read_bytes(), first)
        self.assertEqual(first.decode("utf-8"), "FOO=bar\n" + "\n".join(CANONICAL) + "\n")

    def test_persist_creates_missing_file(self) -> None:
        self.reconciler.persist(self.env_path, self.credential)
        self.assertEqual(self.env_path.read_text(encoding="utf-8").splitlines(), CANONICAL)

    @unittest.skipUnless(os.name == "posix", "file modes are POSIX only")
    def test_persisted_file_is_owner_only(self) -> None:
        self.env_path.write_text("FOO=bar\n", encoding="utf-8")
        os.chmod(self.env_path, 0o644)
        self.reconciler.persist(self.env_path, self.credential)
        self.assertEqual(stat.S_IMODE(self.env_path.stat().st_mode), 0o600)

    def test_no_temporary_files_left(self) -> None:
        self.reconciler.persist(self.env_path, self.credential)
        self.assertEqual([p.name for p in self.root.iterdir()], [".env"])

    def test_unwritable_target_is_fatal(self) -> None:
        with self.assertRaises(CredentialStoreError):
            self.reconciler.persist(self.root / "missing" / ".env", self.credential)

    def test_passwords_with_special_characters_read_back_unchanged(self) -> None:
        for password in ("correct horse #battery", "it's \"quoted\" \\ $HOME", "  padded  "):
            credential = Credential(user="app_user", password=password, database="shop")
            self.reconciler.persist(self.env_path, credential)
            self.assertEqual(self.reconciler.extract_from(self.env_path), credential)

    def test_special_characters_are_quoted_and_stable(self) -> None:
        credential = Credential(user="app_user", password="correct horse #battery", database="shop")
        self.reconciler.persist(self.env_path, credential)
        first = self.env_path.read_bytes()
        self.assertIn(b"DB_PASSWORD='correct horse #battery'\n", first)
        self.reconciler.persist(self.env_path, self.reconciler.extract_from(self.env_path))
        self.assertEqual(self.env_path.read_bytes(), first)

    def test_unreadable_existing_file_is_fatal_on_persist(self) -> None:
        directory = self.root / "dir.env"
        directory.mkdir()
        with self.assertRaises(CredentialStoreError):
            self.reconciler.persist(directory, self.credential)


class TestExtract:

    def setup_method(self):
        self.reconciler = CredentialReconciler()

    def test_mysql_aliases(self):
        config = ConfigFile.parse("MYSQL_USER=u\nMYSQL_PASSWORD=p\nMYSQL_DATABASE=d\n")
        assert self.reconciler.extract(config) == Credential(user="u", password="p", database="d")

    def test_missing_field_yields_none(self):
        config = ConfigFile.parse("MYSQL_USER=u\nMYSQL_PASSWORD=p\n")
        assert self.reconciler.extract(config) is None

    def test_empty_value_counts_as_missing(self):
        config = ConfigFile.parse("DB_USERNAME=u\nDB_PASSWORD=\nDB_DATABASE=d\n")
        assert self.reconciler.extract(config) is None

    def test_preferred_alias_wins(self):
        config = ConfigFile.parse(
            "MYSQL_USER=other\nDB_USERNAME=preferred\nDB_PASS=p\nDB_NAME=d\n"
        )
        credential = self.reconciler.extract(config)
        assert credential.user == "preferred"
        assert credential.password == "p"
        assert credential.database == "d"

    def test_later_alias_used_when_earlier_empty(self):
        config = ConfigFile.parse(
            "DB_USERNAME=\nDATABASE_USER=u\nDATABASE_PASSWORD=p\nDATABASE_NAME=d\n"
        )
        assert self.reconciler.extract(config) == Credential(user="u", password="p", database="d")

    def test_quoted_and_exported_values(self):
        config = ConfigFile.parse(
            'export MYSQL_USER=bob\nMYSQL_PASSWORD="p w#1"\nMYSQL_DATABASE=\'shop\'\n'
        )
        assert self.reconciler.extract(config) == Credential(user="bob", password="p w#1", database="shop")

    def test_absent_config(self):
        assert self.reconciler.extract(None) is None

    def test_extract_from_missing_file(self, tmp_path):
        assert self.reconciler.extract_from(tmp_path / ".env") is None

    def test_extract_from_unreadable_file(self, tmp_path):
        # A directory cannot be read as a file.
        assert self.reconciler.extract_from(tmp_path) is None

    def test_extract_from_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("APP_NAME=shop\nDB_USERNAME=u\nDB_PASSWORD=p\nDB_DATABASE=d\n", encoding="utf-8")
        assert self.reconciler.extract_from(env) == Credential(user="u", password="p", database="d")


class TestConfigFile:

    def test_last_value_wins(self):
        assert ConfigFile.parse("FOO=1\nFOO=2\n").get("FOO") == "2"

    def test_render_adds_trailing_newline(self):
        assert ConfigFile.parse("FOO=1").render() == "FOO=1\n"
        assert ConfigFile().render() == ""

    def test_keys_skip_comments_and_blanks(self):
        config = ConfigFile.parse("# comment\n\nexport A=1\nB = 2\nnot a pair\n")
        assert config.keys() == ["A", "B"]

    def test_without_keeps_order(self):
        config = ConfigFile.parse("A=1\nDB_X=2\n# c\nB=3\n")
        assert config.without(lambda key: key.startswith("DB_")).lines == ["A=1", "# c", "B=3"]


class TestCredential:

    def test_validate_rejects_missing_fields(self):
        with pytest.raises(CredentialValidationError, match="user"):
            Credential(user="", password="p", database="d").validate()

    def test_validate_enforces_minimum_length(self):
        with pytest.raises(CredentialValidationError):
            Credential(user="u", password="short", database="d").validate(min_password_length=12)

    def test_generate(self):
        credential = Credential.generate(database="shop")
        assert credential.user == "app_user"
        assert len(credential.password) == 24
        assert credential.validate(min_password_length=12) is credential
        assert Credential.generate(database="shop").password != credential.password

    def test_database_name_for(self, tmp_path):
        assert database_name_for(tmp_path / "My-App.v2") == "my_app_v2"


if __name__ == "__main__":
    unittest.main()
