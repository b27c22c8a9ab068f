import logging
from pathlib import Path
from typing import Dict

import pytest
import structlog


def create_tree(root: Path, files: Dict[str, str]) -> Path:
    """Creates files (and their parent directories) under root."""
    for rel_path, content in files.items():
        file_path = root / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
    return root


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Keeps per-decision debug events out of captured output."""
    structlog.reset_defaults()
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))
    logging.getLogger("pathsift").handlers.clear()
    yield
    structlog.reset_defaults()
    logging.getLogger("pathsift").setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def no_user_config(tmp_path_factory, monkeypatch):
    """Points the user-global config at a file that does not exist."""
    missing = tmp_path_factory.mktemp("home") / "config.toml"
    monkeypatch.setattr("pathsift.config.loader.USER_CONFIG_FILE", missing)


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """/root/a.txt, /root/sub/b.md, /root/node_modules/c.js"""
    root = tmp_path / "root"
    return create_tree(root, {
        "a.txt": "a",
        "sub/b.md": "b",
        "node_modules/c.js": "c",
    })
