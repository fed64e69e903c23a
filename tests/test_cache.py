"""
Tests for cache.py stores.
"""

import pytest
from unittest.mock import patch

from wp_cpt_bridge.cache import FileCache, MemoryCache, build_cache, cache_key


def test_cache_key():
    assert cache_key("posttype", 1) == "posttype_1"
    assert cache_key("taxonomy", "default") == "taxonomy_default"


class TestMemoryCache:
    def test_round_trip_and_remove(self):
        cache = MemoryCache()
        assert cache.load("posttype_1") is None

        cache.save("posttype_1", "{}")
        assert cache.load("posttype_1") == "{}"
        assert "posttype_1" in cache

        cache.remove("posttype_1")
        cache.remove("posttype_1")
        assert cache.load("posttype_1") is None

    def test_clean(self):
        cache = MemoryCache()
        cache.save("a", "1")
        cache.save("b", "2")
        cache.clean()
        assert cache.load("a") is None
        assert cache.load("b") is None


class TestFileCache:
    def test_entries_survive_new_instance(self, tmp_path):
        FileCache(tmp_path).save("posttype_1", '{"news": {}}')
        assert FileCache(tmp_path).load("posttype_1") == '{"news": {}}'

    def test_overwrite(self, tmp_path):
        cache = FileCache(tmp_path)
        cache.save("posttype_1", "old")
        cache.save("posttype_1", "new")
        assert cache.load("posttype_1") == "new"
        assert not list(tmp_path.glob("*.tmp"))

    def test_keys_do_not_collide(self, tmp_path):
        cache = FileCache(tmp_path)
        cache.save("posttype_1", "one")
        cache.save("posttype/1", "slash")
        assert cache.load("posttype_1") == "one"
        assert cache.load("posttype/1") == "slash"

    def test_remove_and_clean(self, tmp_path):
        cache = FileCache(tmp_path / "nested")
        cache.save("posttype_1", "x")
        cache.save("taxonomy_1", "y")

        cache.remove("posttype_1")
        cache.remove("missing")
        assert cache.load("posttype_1") is None
        assert cache.load("taxonomy_1") == "y"

        cache.clean()
        assert cache.load("taxonomy_1") is None


def test_build_cache(tmp_path):
    assert isinstance(build_cache(None), MemoryCache)
    assert isinstance(build_cache(str(tmp_path)), FileCache)


def test_failed_save_leaves_no_temp_file(tmp_path):
    cache = FileCache(tmp_path)

    with patch("wp_cpt_bridge.cache.os.replace", side_effect=OSError("read-only")):
        with pytest.raises(OSError):
            cache.save("posttype_1", "{}")

    assert not list(tmp_path.glob("*.tmp"))
    assert cache.load("posttype_1") is None
