"""
Unit tests for device selection.
"""

import pytest

from guided_json.backends import device_utils
from guided_json.backends.device_utils import get_device_info, resolve_device


@pytest.fixture
def no_accelerators(monkeypatch):
    monkeypatch.setattr(device_utils, "is_mps_available", lambda: False)
    monkeypatch.setattr(device_utils, "is_cuda_available", lambda: False)


class TestResolveDevice:
    """Test auto-detection and explicit requests."""

    def test_auto_without_accelerators(self, no_accelerators):
        assert resolve_device(None) == "cpu"

    def test_auto_prefers_mps(self, monkeypatch):
        monkeypatch.setattr(device_utils, "is_mps_available", lambda: True)
        monkeypatch.setattr(device_utils, "is_cuda_available", lambda: True)

        assert resolve_device(None) == "mps"

    def test_auto_cuda(self, monkeypatch):
        monkeypatch.setattr(device_utils, "is_mps_available", lambda: False)
        monkeypatch.setattr(device_utils, "is_cuda_available", lambda: True)

        assert resolve_device(None) == "cuda"

    def test_unavailable_request_falls_back(self, no_accelerators):
        assert resolve_device("cuda") == "cpu"
        assert resolve_device("MPS") == "cpu"

    def test_cpu_always_allowed(self, no_accelerators):
        assert resolve_device("cpu") == "cpu"

    def test_unknown_device(self):
        with pytest.raises(ValueError, match="Unknown device"):
            resolve_device("tpu")


def test_device_info_keys(no_accelerators):
    info = get_device_info()

    assert info['mps_available'] is False
    assert info['cuda_available'] is False
    assert 'torch_version' in info
    assert 'cuda_device_count' not in info
