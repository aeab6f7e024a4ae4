"""Shared fixtures: in-memory tarballs and a scripted HTTP session."""
import gzip
import io
import tarfile
from unittest.mock import Mock

import pytest
import requests

from docresolve.identity import FileIdentity, PackageSpec


def make_tar_gz(files, links=None):
    """Build a .tar.gz payload from {name: bytes}; names are stored verbatim."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
        for name, target in (links or {}).items():
            info = tarfile.TarInfo(name=name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return gzip.compress(buf.getvalue())


def mock_response(status_code=200, content=b""):
    response = Mock()
    response.status_code = status_code
    response.content = content
    return response


class ScriptedSession:
    """Stands in for requests.Session; replays responses/exceptions in order."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, timeout=None, **kwargs):
        self.calls.append(url)
        if not self.outcomes:
            raise AssertionError(f"unexpected request to {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def spec():
    return PackageSpec.parse("@preview/example:0.1.0")


@pytest.fixture
def package_archive():
    return make_tar_gz({
        "typst.toml": b'[package]\nname = "example"\nversion = "0.1.0"\nentrypoint = "lib.typ"\n',
        "lib.typ": b"#let greet(name) = [Hello #name]\n",
        "assets/logo.svg": b"<svg/>",
    })


@pytest.fixture
def identity_in(spec):
    def _make(path):
        return FileIdentity.new(path, spec)
    return _make


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
