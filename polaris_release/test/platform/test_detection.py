from __future__ import annotations

import pytest

from polaris_release.platform import detection
from polaris_release.platform.detection import Platform, detect_platform


@pytest.mark.parametrize(
    ("system", "expected"),
    [
        ("Linux", Platform.LINUX),
        ("Darwin", Platform.MACOS),
        ("Windows", Platform.WINDOWS),
        ("MSYS_NT-10.0", Platform.WINDOWS),
        ("Plan9", Platform.UNKNOWN),
    ],
)
def test_detect_platform(monkeypatch: pytest.MonkeyPatch, system: str, expected: Platform) -> None:
    detect_platform.cache_clear()
    monkeypatch.setattr(detection._platform, "system", lambda: system)
    try:
        assert detect_platform() == expected
    finally:
        detect_platform.cache_clear()


def test_from_name() -> None:
    assert Platform.from_name("windows") == Platform.WINDOWS
    assert Platform.from_name(" Linux ") == Platform.LINUX
    assert Platform.from_name("beos") == Platform.UNKNOWN
    assert str(Platform.MACOS) == "macos"
