"""
Tests for the cached template catalog.
"""
import pytest

from errors import NetworkError
from schema.models import AppliedTemplateEntry
from templates import TemplateCatalog


@pytest.fixture
def catalog(mock_client):
    return TemplateCatalog(mock_client, "email")


class TestListing:

    def test_list_is_cached(self, catalog, mock_client):
        first = catalog.list()
        second = catalog.list()
        assert [t.id for t in first] == ["summer-gig"]
        assert [t.id for t in second] == ["summer-gig"]
        mock_client.get_templates.assert_called_once_with("email", mode="raw")

    def test_refresh(self, catalog, mock_client):
        catalog.list()
        catalog.list(refresh=True)
        assert mock_client.get_templates.call_count == 2

    def test_unreachable_backend(self, catalog, mock_client):
        mock_client.get_templates.side_effect = NetworkError("down", 503)
        assert catalog.list() == []

    def test_listing_fills_lookup_cache(self, catalog, mock_client):
        catalog.list()
        assert catalog.get("summer-gig").name == "Summer Gig"
        mock_client.get_template.assert_not_called()


class TestLookup:

    def test_get_is_cached(self, catalog, mock_client):
        assert catalog.get("summer-gig").id == "summer-gig"
        catalog.get("summer-gig")
        mock_client.get_template.assert_called_once_with("email", "summer-gig")

    def test_unknown_template_is_cached(self, catalog, mock_client):
        mock_client.get_template.return_value = None
        assert catalog.get("missing") is None
        assert catalog.get("missing") is None
        assert mock_client.get_template.call_count == 1

    def test_network_failure_is_retried(self, catalog, mock_client):
        mock_client.get_template.side_effect = NetworkError("down", 503)
        assert catalog.get("summer-gig") is None
        catalog.get("summer-gig")
        assert mock_client.get_template.call_count == 2

    def test_empty_id(self, catalog, mock_client):
        assert catalog.get("") is None
        mock_client.get_template.assert_not_called()

    def test_categories(self, catalog, mock_client):
        mock_client.get_template_categories.return_value = [{"id": "music"}]
        assert catalog.categories() == [{"id": "music"}]
        mock_client.get_template_categories.side_effect = NetworkError("down")
        assert catalog.categories() == []


class TestDisplayName:

    def entry(self, **overrides):
        data = {"id": "1", "template_id": "summer-gig", "template_name": "Summer Gig"}
        data.update(overrides)
        return AppliedTemplateEntry(**data)

    def test_translated_name(self, catalog):
        assert catalog.display_name(self.entry(), "de-DE") == "Sommerkonzert"

    def test_english_uses_stored_name(self, catalog):
        assert catalog.display_name(self.entry(template_name="Stored"), "en") == "Stored"

    def test_missing_translation(self, catalog):
        assert catalog.display_name(self.entry(), "es") == "Summer Gig"

    def test_template_name_when_entry_has_none(self, catalog):
        assert catalog.display_name(self.entry(template_name=""), "en") == "Summer Gig"

    def test_unknown_template_falls_back_to_entry(self, catalog, mock_client):
        mock_client.get_template.side_effect = NetworkError("gone", 404)
        assert catalog.display_name(self.entry(template_name="Old Name"), "de") == "Old Name"
