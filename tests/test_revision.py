"""
Tests for revision computation and push decisions.
"""

import hashlib
from unittest.mock import Mock

import pytest
from conftest import make_component

from halsync.core.push.revision import compute_revision, needs_push


class TestComputeRevision:
    """Test payload hashing."""

    def test_sha1_of_content(self, tmp_path):
        payload = tmp_path / "payload.tar"
        payload.write_bytes(b"hello")
        assert compute_revision(payload) == hashlib.sha1(b"hello").hexdigest()

    def test_deterministic(self, tmp_path):
        """Hashing the same file twice yields the same revision."""
        payload = tmp_path / "payload.tar"
        payload.write_bytes(b"x" * 200_000)
        assert compute_revision(payload) == compute_revision(payload)

    def test_one_byte_change(self, tmp_path):
        """Changing a single byte changes the revision."""
        a = tmp_path / "a"
        b = tmp_path / "b"
        data = bytearray(b"x" * 100_000)
        a.write_bytes(bytes(data))
        data[50_000] = ord("y")
        b.write_bytes(bytes(data))
        assert compute_revision(a) != compute_revision(b)

    def test_chunk_size_does_not_matter(self, tmp_path):
        payload = tmp_path / "payload"
        payload.write_bytes(bytes(range(256)) * 1000)
        assert compute_revision(payload, chunk_size=7) == compute_revision(payload)

    def test_empty_file(self, tmp_path):
        payload = tmp_path / "empty"
        payload.write_bytes(b"")
        assert compute_revision(payload) == hashlib.sha1(b"").hexdigest()


class TestNeedsPush:
    """Test the push decision."""

    @pytest.mark.parametrize(
        "stored,pod,marker,expected",
        [
            ("old", "backend-pod", True, True),
            ("old", "", False, True),
            ("", "backend-pod", True, True),
            ("rev", "backend-pod", True, False),
            ("rev", "backend-pod", False, True),
            ("rev", "", False, False),
        ],
    )
    def test_truth_table(self, stored, pod, marker, expected):
        component = make_component(revision=stored, pod=pod)
        assert needs_push("rev", component, lambda _: marker) is expected

    def test_marker_probe_only_when_revision_unchanged(self):
        """The pod isn't probed when the revision already differs."""
        probe = Mock(return_value=True)
        assert needs_push("new", make_component(revision="old"), probe)
        probe.assert_not_called()

    def test_marker_probe_receives_pod_name(self):
        probe = Mock(return_value=True)
        needs_push("rev", make_component(revision="rev", pod="backend-7d9f"), probe)
        probe.assert_called_once_with("backend-7d9f")
