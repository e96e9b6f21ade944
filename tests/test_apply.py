"""
Tests for the Template Apply Orchestrator.
"""
import copy
import re
import unittest

import pytest

from errors import NetworkError
from schema import TemplateRecord
from templates.apply import (
    TemplateApplier,
    format_targets_summary,
    new_entry_id,
    remove_applied_template,
    utc_timestamp,
)


@pytest.fixture
def applier(mock_client, platform_schema):
    return TemplateApplier(mock_client, "email", platform_schema)


class TestApply:

    def test_request_body(self, applier, mock_client, template_record):
        content = {"body": "old"}
        applier.apply(template_record, content, parsed_data={"title": "Gig"},
                      uploaded_file_refs=[{"id": "f1"}])
        mock_client.apply_template.assert_called_once_with("email", "summer-gig", {
            "templateId": "summer-gig",
            "parsedData": {"title": "Gig"},
            "uploadedFileRefs": [{"id": "f1"}],
            "existingContent": {"body": "old"},
        })

    def test_empty_parsed_data_sent_as_none(self, applier, mock_client, template_record):
        applier.apply(template_record, {})
        body = mock_client.apply_template.call_args[0][2]
        assert body["parsedData"] is None
        assert body["uploadedFileRefs"] == []

    def test_merge_keeps_unrelated_keys(self, applier, template_record):
        result = applier.apply(template_record, {"body": "kept", "subject": "old"})
        assert result.success is True
        assert result.content["body"] == "kept"
        assert result.content["subject"] == "Summer Gig live"
        assert result.content["_templateId"] == "summer-gig"

    def test_targets_stored_without_locale(self, applier, template_record):
        targets = {"mode": "groups", "groups": ["g1"], "templateLocale": "de"}
        result = applier.apply(template_record, {}, targets=targets)
        assert result.content["targets"] == {"mode": "groups", "groups": ["g1"]}
        assert result.entry.targets["templateLocale"] == "de"
        assert targets["templateLocale"] == "de"

    def test_default_targets(self, applier, template_record):
        result = applier.apply(template_record, {})
        assert result.content["targets"] == {"mode": "all"}
        assert result.entry.targets is None

    def test_entry_fields(self, applier, template_record):
        result = applier.apply(template_record, {}, specific_files=["f9"])
        entry = result.content["_templates"][0]
        assert entry["templateId"] == "summer-gig"
        assert entry["templateName"] == "Summer Gig"
        assert entry["specificFiles"] == ["f9"]
        assert entry["appliedAt"].endswith("Z")
        assert entry["id"] == result.entry.id

    def test_entries_are_appended(self, applier, template_record):
        first = applier.apply(template_record, {})
        second_template = TemplateRecord.from_dict({"id": "b", "name": "B"})
        second = applier.apply(second_template, first.content)
        entries = second.content["_templates"]
        assert len(entries) == 2
        assert entries[0] == first.content["_templates"][0]
        assert entries[1]["templateId"] == "b"

    def test_prior_entries_kept_verbatim(self, applier, template_record):
        legacy = {"id": "1", "templateId": "a", "templateName": None, "note": "legacy",
                  "targets": {"mode": "all"}}
        result = applier.apply(template_record, {"_templates": [legacy]})
        entries = result.content["_templates"]
        assert entries[0] == {"id": "1", "templateId": "a", "templateName": None, "note": "legacy",
                              "targets": {"mode": "all"}}
        assert entries[1]["templateId"] == "summer-gig"

    def test_no_targets_block(self, mock_client, template_record):
        applier = TemplateApplier(mock_client, "email", None)
        result = applier.apply(template_record, {}, targets={"mode": "all"})
        assert "targets" not in result.content
        assert result.entry.targets == {"mode": "all"}
        mock_client.fetch_options.assert_not_called()


class TestApplyFailures:

    def assert_unchanged(self, result, content, snapshot):
        assert result.success is False
        assert result.content == snapshot
        assert content == snapshot

    def test_service_failure_leaves_content_unchanged(self, applier, mock_client, template_record):
        mock_client.apply_template.side_effect = NetworkError("Template mapping failed", 500)
        content = {"subject": "x", "_templates": [{"id": "1", "templateId": "a"}]}
        snapshot = copy.deepcopy(content)
        result = applier.apply(template_record, content, targets={"mode": "all"})
        self.assert_unchanged(result, content, snapshot)
        assert result.error == "Template mapping failed"

    def test_missing_template_id(self, applier, mock_client):
        result = applier.apply(TemplateRecord(id=""), {"a": 1})
        assert result.success is False
        mock_client.apply_template.assert_not_called()

    def test_unsuccessful_payload(self, applier, mock_client, template_record):
        mock_client.apply_template.return_value = {"success": False}
        result = applier.apply(template_record, {"a": 1})
        assert result.success is False
        assert result.error == "Failed to apply template"
        assert result.content == {"a": 1}

    def test_malformed_payload(self, applier, mock_client, template_record):
        mock_client.apply_template.return_value = {"success": True}
        result = applier.apply(template_record, {"a": 1})
        assert result.success is False
        assert result.error.startswith("Failed to apply template")


class TestNameResolution:

    def test_individual_names(self, applier, mock_client, template_record):
        targets = {"mode": "individual", "individual": ["a", "zz"], "templateLocale": "es"}
        result = applier.apply(template_record, {}, targets=targets)
        assert result.entry.targets["targetNames"] == ["Alice", "zz"]
        assert result.entry.targets["templateLocale"] == "es"
        mock_client.fetch_options.assert_called_with(
            "/platforms/:platformId/recipients", "recipients", "email"
        )

    def test_group_names_from_object(self, applier, mock_client, template_record):
        result = applier.apply(template_record, {}, targets={"mode": "groups", "groups": ["g2", "g3"]})
        assert result.entry.targets["groupNames"] == ["Fans", "g3"]
        mock_client.get_json.assert_called_once_with(
            "/platforms/:platformId/recipient-groups", platform_id="email"
        )

    def test_group_names_from_list(self, applier, mock_client, template_record):
        mock_client.get_json.return_value = {"groups": [{"id": "g1", "name": "Press"}, {"id": "g4"}]}
        result = applier.apply(template_record, {}, targets={"mode": "groups", "groups": ["g1", "g4"]})
        assert result.entry.targets["groupNames"] == ["Press", "g4"]

    def test_all_lists_every_recipient(self, applier, template_record):
        result = applier.apply(template_record, {}, targets={"mode": "all"})
        assert result.entry.targets["targetNames"] == ["Alice", "Bob", "Carol"]

    def test_resolution_failure_keeps_ids_and_locale(self, applier, mock_client, template_record):
        mock_client.fetch_options.side_effect = NetworkError("down", 503)
        targets = {"mode": "individual", "individual": ["a"], "templateLocale": "de"}
        result = applier.apply(template_record, {}, targets=targets)
        assert result.success is True
        assert result.entry.targets == {"mode": "individual", "individual": ["a"], "templateLocale": "de"}


class TestRemoval(unittest.TestCase):

    def test_removes_only_matching_entry(self):
        content = {
            "subject": "merged",
            "_templates": [{"id": "1", "templateId": "a"}, {"id": "2", "templateId": "b"}],
        }
        updated = remove_applied_template(content, "1")
        self.assertEqual([e["id"] for e in updated["_templates"]], ["2"])
        self.assertEqual(updated["subject"], "merged")
        self.assertEqual(len(content["_templates"]), 2)

    def test_remaining_entries_untouched(self):
        legacy = {"id": "1", "templateId": "a", "templateName": None, "note": "legacy"}
        content = {"_templates": [legacy, {"id": "2", "templateId": "b"}]}
        updated = remove_applied_template(content, "2")
        self.assertEqual(updated["_templates"], [{"id": "1", "templateId": "a", "templateName": None,
                                                  "note": "legacy"}])

    def test_unknown_id(self):
        content = {"_templates": [{"id": "1", "templateId": "a"}]}
        self.assertEqual(len(remove_applied_template(content, "x")["_templates"]), 1)


class TestFormatting(unittest.TestCase):

    def test_no_targets(self):
        self.assertEqual(format_targets_summary(None), "No targets")
        self.assertEqual(format_targets_summary({}), "No targets")

    def test_all(self):
        self.assertEqual(format_targets_summary({"mode": "all", "targetNames": ["Ann", "Bob"]}),
                         "All recipients: Ann, Bob")

    def test_groups_prefer_names(self):
        summary = format_targets_summary({"mode": "groups", "groups": ["g1"], "groupNames": ["Press"]})
        self.assertEqual(summary, "1 group(s): Press")
        self.assertEqual(format_targets_summary({"mode": "groups", "groups": ["g1"]}), "1 group(s): g1")

    def test_individual_truncates(self):
        targets = {"mode": "individual", "individual": ["a", "b", "c", "d"],
                   "targetNames": ["Ann", "Bob", "Cid", "Dan"]}
        self.assertEqual(format_targets_summary(targets), "4 recipient(s): Ann, Bob, Cid...")

    def test_unknown_mode(self):
        self.assertEqual(format_targets_summary({"mode": "custom"}), "Targets configured")


class TestEntryHelpers(unittest.TestCase):

    def test_entry_id_format(self):
        self.assertRegex(new_entry_id(), r"^\d+-[0-9a-z]{9}$")

    def test_timestamp_format(self):
        self.assertTrue(re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", utc_timestamp()))
