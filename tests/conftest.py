import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdocs.app import create_app
from mdocs.auth import passwords
from mdocs.auth.passwords import hash_password
from mdocs.auth.users import CredentialStore
from mdocs.config import Settings


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    # Minimum cost factor; the default makes the suite crawl.
    monkeypatch.setattr(passwords, "BCRYPT_ROUNDS", 4)


@pytest.fixture()
def docs_dir(tmp_path: Path) -> Path:
    """Document root holding one text file and one markdown file."""
    d = tmp_path / "user_files"
    d.mkdir()
    (d / "herstory.txt").write_text(
        "Kamala Harris is the first female vice president of the United States.", encoding="utf-8"
    )
    (d / "sample_markdown.md").write_text("# Sample\n\nThis is a sample paragraph.", encoding="utf-8")
    return d


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "credentials.json"


@pytest.fixture()
def store(users_path: Path) -> CredentialStore:
    return CredentialStore(users_path)


@pytest.fixture()
def write_credentials(users_path: Path):
    """Write a credential file from (username, password[, role]) tuples."""

    def _write(*users):
        entries = []
        for u in users:
            entry = {"username": u[0], "password": hash_password(u[1])}
            if len(u) > 2:
                entry["role"] = u[2]
            entries.append(entry)
        users_path.parent.mkdir(parents=True, exist_ok=True)
        users_path.write_text(json.dumps(entries), encoding="utf-8")
        return entries

    return _write


@pytest.fixture()
def settings(docs_dir: Path, users_path: Path) -> Settings:
    return Settings(secret_key="test-secret", documents_dir=docs_dir, users_path=users_path)


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture()
def login(client: TestClient):
    def _login(username: str = "admin", password: str = "secret"):
        return client.post("/user/login", data={"username": username, "password": password})

    return _login
