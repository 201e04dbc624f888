"""Tests for entry classification."""

from __future__ import annotations

import os

import pytest

from dutop.core.classifier import InaccessibleReason, Kind, classify, identity_of


class TestClassify:
    def test_regular_file(self, sample_tree):
        result = classify(sample_tree / "big.bin")
        assert result.kind is Kind.FILE
        assert result.size == 5000
        assert result.reason is None

    def test_directory_carries_identity(self, sample_tree):
        result = classify(sample_tree / "docs")
        assert result.kind is Kind.DIR
        assert result.identity == identity_of(os.stat(sample_tree / "docs"))

    def test_missing_path(self, tmp_path):
        result = classify(tmp_path / "nope")
        assert result.kind is Kind.INACCESSIBLE
        assert result.reason is InaccessibleReason.NOT_FOUND

    def test_permission_denied(self, sample_tree, deny_paths):
        target = sample_tree / "small.txt"
        deny_paths(stat=(target,))
        result = classify(target)
        assert result.kind is Kind.INACCESSIBLE
        assert result.reason is InaccessibleReason.PERMISSION_DENIED

    def test_symlink_not_followed_by_default(self, sample_tree):
        link = sample_tree / "link"
        link.symlink_to(sample_tree / "big.bin")
        assert classify(link).kind is Kind.OTHER

    def test_followed_symlink_reports_target(self, sample_tree):
        link = sample_tree / "link"
        link.symlink_to(sample_tree / "big.bin")
        result = classify(link, follow_symlinks=True)
        assert result.kind is Kind.FILE
        assert result.size == 5000

    def test_broken_symlink(self, tmp_path):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "missing")
        result = classify(link, follow_symlinks=True)
        assert result.kind is Kind.INACCESSIBLE
        assert result.reason is InaccessibleReason.BROKEN_SYMLINK

    def test_symlink_to_ancestor_is_cycle(self, sample_tree):
        sub = sample_tree / "docs" / "sub"
        link = sub / "back"
        link.symlink_to(sample_tree / "docs")
        ancestors = frozenset(
            identity_of(os.stat(p)) for p in (sample_tree, sample_tree / "docs", sub)
        )
        result = classify(link, ancestors, follow_symlinks=True)
        assert result.kind is Kind.INACCESSIBLE
        assert result.reason is InaccessibleReason.SYMLINK_CYCLE

    def test_symlink_to_unrelated_directory_is_dir(self, sample_tree):
        link = sample_tree / "docs" / "to_media"
        link.symlink_to(sample_tree / "media")
        ancestors = frozenset(identity_of(os.stat(p)) for p in (sample_tree, sample_tree / "docs"))
        result = classify(link, ancestors, follow_symlinks=True)
        assert result.kind is Kind.DIR

    def test_directory_already_on_path_is_cycle(self, sample_tree):
        docs = sample_tree / "docs"
        result = classify(docs, frozenset({identity_of(os.stat(docs))}))
        assert result.reason is InaccessibleReason.SYMLINK_CYCLE

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_fifo_is_other(self, tmp_path):
        fifo = tmp_path / "pipe"
        os.mkfifo(fifo)
        result = classify(fifo)
        assert result.kind is Kind.OTHER
        assert result.reason is None
