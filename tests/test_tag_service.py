"""Tests for tag validation and the tag registry."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from filevault.exceptions import InvalidArgumentError
from filevault.services.tag_service import TagService


@pytest.fixture
def tag_service(test_db):
    return TagService(max_tags=5)


class TestValidateAndNormalize:
    def test_empty_and_none(self, tag_service):
        assert tag_service.validate_and_normalize_tags(None) == []
        assert tag_service.validate_and_normalize_tags([]) == []

    def test_lowercases_and_deduplicates_in_order(self, tag_service):
        result = tag_service.validate_and_normalize_tags(["Invoice", "2024", "invoice", " Tax "])

        assert result == ["invoice", "2024", "tax"]

    def test_too_many_tags(self, tag_service):
        with pytest.raises(InvalidArgumentError, match="Maximum 5 tags"):
            tag_service.validate_and_normalize_tags(["a", "b", "c", "d", "e", "f"])

    @pytest.mark.parametrize("tag", ["", "   ", None])
    def test_blank_tag(self, tag_service, tag):
        with pytest.raises(InvalidArgumentError, match="empty"):
            tag_service.validate_and_normalize_tags(["ok", tag])

    @pytest.mark.parametrize("tag", ["has space", "dot.tag", "x" * 31, "ünïcode"])
    def test_malformed_tag(self, tag_service, tag):
        with pytest.raises(InvalidArgumentError, match="alphanumeric"):
            tag_service.validate_and_normalize_tags([tag])

    def test_accepts_dash_and_underscore(self, tag_service):
        assert tag_service.validate_and_normalize_tags(["my-tag_1", "x" * 30]) == ["my-tag_1", "x" * 30]


class TestRegistry:
    def test_ensure_exist_creates_missing_tags(self, tag_service):
        tag_service.ensure_exist(["beta", "alpha"])
        tag_service.ensure_exist(["alpha", "gamma"])

        assert tag_service.get_all_tags() == ["alpha", "beta", "gamma"]

    def test_ensure_exist_with_no_tags(self, tag_service):
        tag_service.ensure_exist([])

        assert tag_service.get_all_tags() == []

    def test_concurrent_ensure_exist_is_idempotent(self, tag_service):
        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(tag_service.ensure_exist, ["shared", "common"]) for _ in range(16)]
            for future in futures:
                future.result()

        assert tag_service.get_all_tags() == ["common", "shared"]
