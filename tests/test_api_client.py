"""
Tests for the backend API client.

HTTP is mocked at requests.Session.request; no network access is needed.
"""
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests

from api import PromoterAPIClient, substitute_platform
from errors import NetworkError, SchemaValidationError
from schema import FieldOption, PlatformSchema


def make_response(data=None, status_code=200, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if invalid_json:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = data
    return response


class TestClientSetup(unittest.TestCase):
    """Test client construction and URL building."""

    def test_from_config(self):
        config = {"api": {"url": "https://promoter.example.com/api/", "timeout": 5, "max_workers": 3}}
        client = PromoterAPIClient.from_config(config)
        self.assertEqual(client.base_url, "https://promoter.example.com/api")
        self.assertEqual(client.timeout, 5)
        self.assertEqual(client.max_workers, 3)
        self.assertNotIn("Authorization", client.session.headers)

    def test_from_config_reads_token_secret(self):
        with tempfile.NamedTemporaryFile(mode="w", delete=False) as f:
            f.write("s3cret\n")
            token_path = f.name
        try:
            client = PromoterAPIClient.from_config({"api": {"url": "http://x/api", "token_file": token_path}})
            self.assertEqual(client.session.headers["Authorization"], "Bearer s3cret")
        finally:
            os.unlink(token_path)

    def test_build_url(self):
        client = PromoterAPIClient("http://localhost:4000/api")
        self.assertEqual(client.build_url("platforms/email/schema"), "http://localhost:4000/api/platforms/email/schema")
        self.assertEqual(client.build_url("/api/platforms/email"), "http://localhost:4000/api/platforms/email")
        self.assertEqual(client.build_url("https://other.example.com/x"), "https://other.example.com/x")

    def test_substitute_platform(self):
        self.assertEqual(substitute_platform("/platforms/:platformId/recipients", "email"),
                         "/platforms/email/recipients")
        self.assertEqual(substitute_platform("/static", "email"), "/static")


class TestRequests(unittest.TestCase):
    """Test error mapping of _request."""

    def setUp(self):
        self.client = PromoterAPIClient("http://localhost:4000/api")

    @patch("api.client.requests.Session.request")
    def test_get_json_success(self, mock_request):
        mock_request.return_value = make_response({"success": True, "value": 1})
        self.assertEqual(self.client.get_json("things"), {"success": True, "value": 1})
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("GET", "http://localhost:4000/api/things"))
        self.assertEqual(kwargs["timeout"], 30)

    @patch("api.client.requests.Session.request")
    def test_platform_placeholder_substituted(self, mock_request):
        mock_request.return_value = make_response({"options": []})
        self.client.get_json("/platforms/:platformId/recipients", platform_id="email")
        self.assertEqual(mock_request.call_args[0][1], "http://localhost:4000/api/platforms/email/recipients")

    @patch("api.client.requests.Session.request")
    def test_http_error_carries_server_message(self, mock_request):
        mock_request.return_value = make_response({"error": "Recipient exists"}, status_code=409)
        with self.assertRaises(NetworkError) as ctx:
            self.client.post_json("recipients", {"email": "a@example.com"})
        self.assertEqual(ctx.exception.message, "Recipient exists")
        self.assertEqual(ctx.exception.status_code, 409)

    @patch("api.client.requests.Session.request")
    def test_http_error_without_body(self, mock_request):
        mock_request.return_value = make_response(status_code=500, invalid_json=True)
        with self.assertRaises(NetworkError) as ctx:
            self.client.get_json("things")
        self.assertEqual(ctx.exception.message, "Request failed with status 500")

    @patch("api.client.requests.Session.request")
    def test_invalid_json(self, mock_request):
        mock_request.return_value = make_response(invalid_json=True)
        with self.assertRaises(NetworkError):
            self.client.get_json("things")

    @patch("api.client.requests.Session.request")
    def test_success_false_payload(self, mock_request):
        mock_request.return_value = make_response({"success": False, "error": "Nope"})
        with self.assertRaises(NetworkError) as ctx:
            self.client.get_json("things")
        self.assertEqual(ctx.exception.message, "Nope")

    @patch("api.client.requests.Session.request")
    def test_timeout(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(NetworkError) as ctx:
            self.client.get_json("things")
        self.assertIsNone(ctx.exception.status_code)

    @patch("api.client.requests.Session.request")
    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(NetworkError):
            self.client.get_json("things")


class TestPlatformSchema(unittest.TestCase):
    """Test schema fetching, validation and caching."""

    def setUp(self):
        self.client = PromoterAPIClient("http://localhost:4000/api")
        self.schema = {"editor": {"blocks": [{"id": "content", "type": "form", "fields": [{"name": "subject"}]}]}}

    @patch("api.client.requests.Session.request")
    def test_platform_envelope(self, mock_request):
        mock_request.return_value = make_response({"success": True, "platform": {"schema": self.schema}})
        schema = self.client.get_platform_schema("email")
        self.assertIsInstance(schema, PlatformSchema)
        self.assertEqual(schema.platform_id, "email")
        self.assertEqual(schema.blocks[0].fields[0].name, "subject")

    @patch("api.client.requests.Session.request")
    def test_schema_envelope(self, mock_request):
        mock_request.return_value = make_response({"success": True, "schema": self.schema})
        self.assertEqual(len(self.client.get_platform_schema("email").blocks), 1)

    @patch("api.client.requests.Session.request")
    def test_cached_per_platform(self, mock_request):
        mock_request.return_value = make_response({"success": True, "schema": self.schema})
        first = self.client.get_platform_schema("email")
        second = self.client.get_platform_schema("email")
        self.assertIs(first, second)
        self.assertEqual(mock_request.call_count, 1)
        self.client.get_platform_schema("email", refresh=True)
        self.assertEqual(mock_request.call_count, 2)

    @patch("api.client.requests.Session.request")
    def test_missing_schema(self, mock_request):
        mock_request.return_value = make_response({"success": True})
        with self.assertRaises(NetworkError):
            self.client.get_platform_schema("email")

    @patch("api.client.requests.Session.request")
    def test_invalid_schema(self, mock_request):
        mock_request.return_value = make_response({"success": True, "schema": {"editor": {"blocks": [{}]}}})
        with self.assertRaises(SchemaValidationError):
            self.client.get_platform_schema("email")


class TestOptionsAndTemplates(unittest.TestCase):
    """Test option loading, target registration and template endpoints."""

    def setUp(self):
        self.client = PromoterAPIClient("http://localhost:4000/api")

    @patch("api.client.requests.Session.request")
    def test_fetch_options_from_options_key(self, mock_request):
        mock_request.return_value = make_response({"success": True, "options": [{"label": "Alice", "value": "a"}]})
        self.assertEqual(self.client.fetch_options("/x"), [FieldOption(label="Alice", value="a")])

    @patch("api.client.requests.Session.request")
    def test_fetch_options_from_source_key(self, mock_request):
        mock_request.return_value = make_response({"success": True, "recipients": [{"id": "a", "name": "Alice"}]})
        options = self.client.fetch_options("/platforms/:platformId/recipients", "recipients", "email")
        self.assertEqual(options, [FieldOption(label="Alice", value="a")])

    @patch("api.client.requests.Session.request")
    def test_fetch_options_from_bare_list(self, mock_request):
        mock_request.return_value = make_response(["news", "events"])
        self.assertEqual([o.value for o in self.client.fetch_options("/x")], ["news", "events"])

    @patch("api.client.requests.Session.request")
    def test_register_target(self, mock_request):
        mock_request.return_value = make_response({"success": True, "recipient": {"id": "d"}})
        self.client.register_target("/platforms/:platformId/recipients", {"email": "d@example.com"}, "email")
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("POST", "http://localhost:4000/api/platforms/email/recipients"))
        self.assertEqual(kwargs["json"], {"email": "d@example.com"})

    @patch("api.client.requests.Session.request")
    def test_apply_template(self, mock_request):
        mock_request.return_value = make_response({"success": True, "content": {"subject": "x"}})
        body = {"templateId": "t1", "parsedData": None, "uploadedFileRefs": [], "existingContent": {}}
        result = self.client.apply_template("email", "t1", body)
        self.assertEqual(result["content"], {"subject": "x"})
        self.assertEqual(mock_request.call_args[0][1], "http://localhost:4000/api/templates/email/t1/apply")

    @patch("api.client.requests.Session.request")
    def test_get_templates(self, mock_request):
        mock_request.return_value = make_response({"success": True, "templates": [{"id": "t1"}]})
        self.assertEqual(self.client.get_templates("email"), [{"id": "t1"}])
        self.assertEqual(mock_request.call_args[1]["params"], {"mode": "raw"})

    @patch("api.client.requests.Session.request")
    def test_get_template_and_categories(self, mock_request):
        mock_request.return_value = make_response({"success": True, "template": {"id": "t1"}})
        self.assertEqual(self.client.get_template("email", "t1"), {"id": "t1"})
        mock_request.return_value = make_response({"success": True, "categories": [{"id": "music"}]})
        self.assertEqual(self.client.get_template_categories(), [{"id": "music"}])
