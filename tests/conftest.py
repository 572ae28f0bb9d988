"""Pytest configuration and shared fixtures for hotpatch_tools tests."""

import hashlib
import tempfile
import zipfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import Mock

import pytest
import structlog

from hotpatch_tools.core.config import AppConfig, DigestConfig
from hotpatch_tools.core.lifecycle import DeferredCleanup
from hotpatch_tools.core.naming import CODE_ENTRY_NAME, RESOURCE_TABLE_ENTRY_NAME, PatchLayout


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_fingerprint() -> str:
    """MD5 of b"hello"."""
    return "5d41402abc4b2a76b9719d911017c592"


@pytest.fixture
def code_bytes() -> bytes:
    """Stand-in for a packaged code payload."""
    return b"dex\n035\x00" + bytes(range(256)) * 64


@pytest.fixture
def resource_bytes() -> bytes:
    """Stand-in for a packaged resource table."""
    return b"\x02\x00\x0c\x00" + b"resource-table" * 500


@pytest.fixture
def sample_patch_archive(temp_dir: Path, code_bytes: bytes, resource_bytes: bytes) -> Path:
    """Zip archive holding a code entry, a resource table and a manifest."""
    path = temp_dir / "patch-5d41402a.patch"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(CODE_ENTRY_NAME, code_bytes)
        zf.writestr(RESOURCE_TABLE_ENTRY_NAME, resource_bytes)
        zf.writestr("assets/dex_meta.txt", "classes.dex,,5d41402abc4b2a76b9719d911017c592\n")
    return path


@pytest.fixture
def code_md5(code_bytes: bytes) -> str:
    return hashlib.md5(code_bytes).hexdigest()


@pytest.fixture
def resource_md5(resource_bytes: bytes) -> str:
    return hashlib.md5(resource_bytes).hexdigest()


@pytest.fixture
def nested_tree(temp_dir: Path) -> Path:
    """Three nested directory levels holding five files."""
    root = temp_dir / "patch-1234abcd"
    level2 = root / "dex"
    level3 = level2 / "oat"
    level3.mkdir(parents=True)
    (root / "a.bin").write_bytes(b"a" * 10)
    (root / "b.bin").write_bytes(b"b" * 20)
    (level2 / "c.bin").write_bytes(b"c" * 30)
    (level3 / "d.bin").write_bytes(b"d" * 40)
    (level3 / "e.bin").write_bytes(b"e" * 50)
    return root


@pytest.fixture
def cleanup() -> DeferredCleanup:
    """Fresh deferred cleanup list, isolated from the process-wide one."""
    return DeferredCleanup()


@pytest.fixture
def mock_console() -> Mock:
    """Create standardized mock Rich console for CLI testing.

    Printed output is tracked in ``printed_lines`` with Rich markup removed
    and also written to stdout so Click can capture it.
    """
    import re
    import sys

    console = Mock()
    console.printed_lines = []

    def track_print(text, **kwargs):
        clean_text = re.sub(r'\[/?[^\]]*\]', '', str(text))
        console.printed_lines.append(clean_text)
        print(clean_text, file=sys.stdout)

    console.print.side_effect = track_print
    return console


@pytest.fixture
def mock_config(temp_dir: Path) -> Mock:
    """Create standardized mock app config for CLI testing."""
    config = Mock(spec=AppConfig)
    config.output_format = "rich"
    config.data_dir = temp_dir / "data"
    config.digest = DigestConfig()
    config.layout.return_value = PatchLayout(data_dir=temp_dir / "data")
    return config


@pytest.fixture
def cli_obj(mock_config: Mock, mock_console: Mock) -> dict:
    """Click context object shared by command tests."""
    return {
        "config": mock_config,
        "console": mock_console,
        "verbose": False,
        "debug": False,
    }


# Pytest configuration
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest settings."""
    # Route log events through stdlib logging so pytest captures them
    # instead of mixing them into CLI output
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add unit marker to all tests by default
        if not any(marker.name in ['integration', 'slow'] for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
