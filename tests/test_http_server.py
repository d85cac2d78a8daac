import unittest
from unittest.mock import AsyncMock

from starlette.testclient import TestClient

from pica_mcp.passthrough import build_pica_mcp_server
from pica_mcp.server_streamablehttp import create_app, invocation_from_json

EXECUTE_BODY = {
    "actionId": "conn_mod_def::send",
    "connectionKey": "live::gmail::default::abc123",
    "method": "POST",
    "path": "/users/{{userId}}/messages/send",
    "data": {"userId": "me"},
    "isFormData": 0,
}


class TestInvocationFromJson(unittest.TestCase):

    def test_camel_case_keys(self):
        invocation = invocation_from_json(dict(EXECUTE_BODY, queryParams={"a": "b"}, isFormUrlEncoded=True))
        self.assertEqual(invocation.action_id, "conn_mod_def::send")
        self.assertEqual(invocation.query_params, {"a": "b"})
        self.assertFalse(invocation.is_form_data)
        self.assertTrue(invocation.is_form_url_encoded)

    def test_path_from_action_object(self):
        body = dict(EXECUTE_BODY, action={"_id": "x", "path": "/from/action"})
        del body["path"]
        self.assertEqual(invocation_from_json(body).path, "/from/action")

    def test_action_object_supplies_id_and_path(self):
        body = dict(EXECUTE_BODY, action={"_id": "conn_mod_def::list", "path": "/users/{{userId}}/labels"})
        del body["actionId"]
        del body["path"]
        invocation = invocation_from_json(body)
        self.assertEqual(invocation.action_id, "conn_mod_def::list")
        self.assertEqual(invocation.path, "/users/{{userId}}/labels")

    def test_missing_action_id(self):
        body = dict(EXECUTE_BODY)
        del body["actionId"]
        with self.assertRaises(KeyError):
            invocation_from_json(body)

    def test_missing_required_key(self):
        body = dict(EXECUTE_BODY)
        del body["connectionKey"]
        with self.assertRaises(KeyError):
            invocation_from_json(body)


class TestHttpRoutes(unittest.TestCase):

    def setUp(self):
        self.pica = build_pica_mcp_server("sk_test", "https://api.pica.test/")
        self.dispatcher = self.pica.dispatcher
        self.client = TestClient(create_app(self.pica))

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "status": "healthy",
            "server": "pica-mcp-server",
            "catalog_initialized": False,
            "tools_count": 5,
        })

    def test_info(self):
        info = self.client.get("/info").json()
        self.assertEqual(info["baseUrl"], "https://api.pica.test")
        self.assertIn("execute_action", info["tools"])
        self.assertNotIn("sk_test", str(info))

    def test_connections(self):
        self.dispatcher.list_connections_and_connectors = AsyncMock(return_value={"success": True, "connections": []})
        response = self.client.get("/connections")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["connections"], [])

    def test_actions_failure_is_bad_gateway(self):
        self.dispatcher.get_available_actions = AsyncMock(return_value={"success": False, "error": "boom"})
        response = self.client.get("/actions/gmail")
        self.assertEqual(response.status_code, 502)
        self.dispatcher.get_available_actions.assert_awaited_once_with("gmail")

    def test_execute(self):
        self.dispatcher.execute_action = AsyncMock(return_value={"success": True, "result": {"id": 1}})
        response = self.client.post("/execute", json=EXECUTE_BODY)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["result"], {"id": 1})
        invocation = self.dispatcher.execute_action.await_args.args[0]
        self.assertEqual(invocation.path_variables, None)
        self.assertEqual(invocation.data, {"userId": "me"})

    def test_execute_upstream_failure(self):
        self.dispatcher.execute_action = AsyncMock(return_value={"success": False, "error": "Request failed"})
        response = self.client.post("/execute", json=EXECUTE_BODY)
        self.assertEqual(response.status_code, 502)

    def test_execute_invalid_body(self):
        self.dispatcher.execute_action = AsyncMock()
        response = self.client.post("/execute", content=b"not json", headers={"Content-Type": "application/json"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

        response = self.client.post("/execute", json={"method": "GET"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid request body", response.json()["error"])
        self.dispatcher.execute_action.assert_not_awaited()

    def test_generate(self):
        self.dispatcher.generate_action_config = AsyncMock(
            return_value={"success": False, "title": "Failed to create request config", "error": "nope"})
        response = self.client.post("/generate", json=dict(EXECUTE_BODY, platform="gmail"))
        self.assertEqual(response.status_code, 400)
        platform, invocation = self.dispatcher.generate_action_config.await_args.args
        self.assertEqual(platform, "gmail")
        self.assertEqual(invocation.method, "POST")

    def test_generate_accepts_action_object(self):
        self.dispatcher.generate_action_config = AsyncMock(return_value={"success": True})
        body = {
            "platform": "gmail",
            "action": {"_id": "conn_mod_def::send", "path": "/users/{{userId}}/messages/send"},
            "method": "POST",
            "connectionKey": "live::gmail::default::abc123",
        }
        response = self.client.post("/generate", json=body)
        self.assertEqual(response.status_code, 200)
        _, invocation = self.dispatcher.generate_action_config.await_args.args
        self.assertEqual(invocation.action_id, "conn_mod_def::send")
        self.assertEqual(invocation.path, "/users/{{userId}}/messages/send")


if __name__ == '__main__':
    unittest.main()
