"""
Unit tests for image URL construction and migration
"""

from src.shared.url_migration import (
    build_image_url,
    fix_poster_url,
    image_key_from_url,
    migrate_poster_urls,
)
from tests.helpers import API_BASE, make_poster

OLD_BASE = "https://old.example.net"


class TestImageUrls:
    """Test cases for image URL helpers"""

    def test_build_quotes_key(self):
        assert build_image_url(API_BASE + "/", "posters/1-海报 a.png") == (
            f"{API_BASE}/api/get-poster-url/posters/1-%E6%B5%B7%E6%8A%A5%20a.png"
        )

    def test_key_from_url(self):
        url = build_image_url(OLD_BASE, "posters/1-海报.png")
        assert image_key_from_url(url) == "posters/1-海报.png"
        assert image_key_from_url("https://cdn.example.com/a.png") is None
        assert image_key_from_url(f"{OLD_BASE}/api/get-poster-url/") is None


class TestFixPosterUrl:
    """Test cases for fix_poster_url"""

    def test_canonical_poster_is_returned_unchanged(self):
        poster = make_poster("a")
        assert fix_poster_url(poster, API_BASE) is poster

    def test_legacy_base_is_rewritten(self):
        poster = make_poster("a", imageUrl=f"{OLD_BASE}/api/get-poster-url/posters/1-a.png", imageKey="posters/1-a.png")
        fixed = fix_poster_url(poster, API_BASE, [OLD_BASE])
        assert fixed.imageUrl == f"{API_BASE}/api/get-poster-url/posters/1-a.png"
        assert poster.imageUrl.startswith(OLD_BASE)

    def test_missing_key_recovered_from_url(self):
        poster = make_poster("a", imageKey="", imageUrl=f"{OLD_BASE}/api/get-poster-url/posters/1-a.png")
        assert fix_poster_url(poster, API_BASE).imageKey == "posters/1-a.png"

    def test_missing_url_filled_from_key(self):
        poster = make_poster("a", imageKey="posters/1-a.png", imageUrl="")
        assert fix_poster_url(poster, API_BASE).imageUrl == f"{API_BASE}/api/get-poster-url/posters/1-a.png"

    def test_external_url_left_alone(self):
        poster = make_poster("a", imageUrl="https://cdn.example.com/a.png")
        assert fix_poster_url(poster, API_BASE) is poster

    def test_nothing_to_build_from(self):
        poster = make_poster("a", imageKey="", imageUrl="")
        assert fix_poster_url(poster, API_BASE) is poster


class TestMigratePosterUrls:
    """Test cases for migrate_poster_urls"""

    def _seed(self, repository):
        repository.save(make_poster("old", imageKey="posters/1-a.png", imageUrl=f"{OLD_BASE}/api/get-poster-url/posters/1-a.png", updated_at=5))
        repository.save(make_poster("ok", updated_at=4))

    def test_dry_run_reports_without_writing(self, repository):
        self._seed(repository)
        report = migrate_poster_urls(repository, API_BASE, [OLD_BASE], dry_run=True)
        assert report.scanned == 2
        assert report.updated == 1
        assert report.ids == ["old"]
        assert report.dryRun is True
        assert repository.get("old").imageUrl.startswith(OLD_BASE)

    def test_migration_saves_and_keeps_updated_at(self, repository):
        self._seed(repository)
        report = migrate_poster_urls(repository, API_BASE, [OLD_BASE])
        migrated = repository.get("old")
        assert report.updated == 1
        assert migrated.imageUrl.startswith(API_BASE)
        assert migrated.updatedAt == 5

    def test_second_run_is_a_no_op(self, repository):
        self._seed(repository)
        migrate_poster_urls(repository, API_BASE, [OLD_BASE])
        assert migrate_poster_urls(repository, API_BASE, [OLD_BASE]).updated == 0
