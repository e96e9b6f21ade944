"""
Pytest configuration and shared fixtures for all tests.

This module provides sample backend payloads used across the suite:
- A platform schema with a targets block and a form block
- Option-source responses for the targets block
- Template records with variable definitions
- A mock API client whose responses are plain dictionaries
"""
import copy

import pytest
from unittest.mock import MagicMock

from schema import FieldOption, PlatformSchema, TemplateRecord


SAMPLE_SCHEMA_PAYLOAD = {
    "editor": {
        "constraints": {"maxLength": 200},
        "blocks": [
            {
                "id": "targets",
                "type": "targets",
                "label": "Recipients",
                "rendering": {
                    "schema": {
                        "mode": {"fieldType": "select", "source": "modes", "default": None},
                        "individual": {
                            "fieldType": "multiselect",
                            "source": "recipients",
                            "visibleWhen": {"field": "mode", "value": "individual"},
                        },
                        "groups": {
                            "fieldType": "multiselect",
                            "source": "recipientGroups",
                            "visibleWhen": {"field": "mode", "value": "groups"},
                        },
                    },
                    "dataEndpoints": {
                        "modes": "/platforms/:platformId/target-modes",
                        "recipients": "/platforms/:platformId/recipients",
                        "recipientGroups": "/platforms/:platformId/recipient-groups",
                    },
                },
            },
            {
                "id": "content",
                "type": "form",
                "fields": [
                    {"name": "subject", "type": "text", "label": "Subject", "required": True,
                     "validation": [{"type": "maxLength", "value": 80}]},
                    {"name": "body", "type": "textarea", "label": "Body"},
                    {"name": "price", "type": "text", "label": "Price"},
                ],
            },
        ],
    },
    "settings": {},
    "credentials": {},
}


SAMPLE_TEMPLATE = {
    "id": "summer-gig",
    "name": "Summer Gig",
    "category": "music",
    "template": {"subject": "{title} live", "body": "Join us at {venue}"},
    "translations": {"de": {"name": "Sommerkonzert"}},
    "variables": ["title", "venue"],
    "variableDefinitions": [
        {"name": "eventTitle", "canonicalName": "title", "label": "Title",
         "source": "parsed", "parsedField": "title"},
        {"name": "title"},
        {"name": "venue", "aliases": ["location"], "label": "Venue"},
    ],
}


@pytest.fixture
def schema_payload():
    """A fresh copy of the sample platform schema payload."""
    return copy.deepcopy(SAMPLE_SCHEMA_PAYLOAD)


@pytest.fixture
def platform_schema(schema_payload):
    return PlatformSchema.from_dict("email", schema_payload)


@pytest.fixture
def template_record():
    return TemplateRecord.from_dict(copy.deepcopy(SAMPLE_TEMPLATE))


@pytest.fixture
def recipient_options():
    return [
        FieldOption(label="Alice", value="a"),
        FieldOption(label="Bob", value="b"),
        FieldOption(label="Carol", value="c"),
    ]


@pytest.fixture
def mock_client(platform_schema, recipient_options):
    """MagicMock API client with canned responses for the sample schema."""
    client = MagicMock()
    client.max_workers = 4
    client.get_platform_schema.return_value = platform_schema

    def fetch_options(endpoint, source_key=None, platform_id=None):
        if source_key == "modes":
            return [FieldOption(label=m, value=m) for m in ("all", "groups", "individual")]
        if source_key == "recipients":
            return list(recipient_options)
        if source_key == "recipientGroups":
            return [FieldOption(label="Press", value="g1")]
        return []

    client.fetch_options.side_effect = fetch_options
    client.get_json.return_value = {
        "success": True,
        "groups": {"g1": {"id": "g1", "name": "Press"}, "g2": {"id": "g2", "name": "Fans"}},
    }
    client.get_template.return_value = copy.deepcopy(SAMPLE_TEMPLATE)
    client.get_templates.return_value = [copy.deepcopy(SAMPLE_TEMPLATE)]
    client.apply_template.return_value = {
        "success": True,
        "content": {"subject": "Summer Gig live", "_templateId": "summer-gig"},
    }
    return client
