import json
import unittest

from pica_mcp.passthrough.assembler import assemble
from pica_mcp.passthrough.codegen import redact, render_python_code, sanitized_config
from pica_mcp.passthrough.encoding import encode
from pica_mcp.passthrough.models import BodyEncoding, Payload

BASE_URL = "https://api.pica.test"
SECRET = "sk_live_do_not_leak_42"


def _descriptor(method="POST", data=None, encoding=BodyEncoding.JSON, headers=None, params=None):
    return assemble(BASE_URL, "/users/me/messages", method, "conn-key", "action-1", SECRET,
                    headers=headers, query_params=params,
                    body=encode(Payload.wrap(data), encoding, boundary="b0undary"))


class TestRenderPythonCode(unittest.TestCase):

    def test_secret_never_rendered(self):
        """Every encoding and method keeps the secret out of the output."""
        for method in ("GET", "POST"):
            for encoding in BodyEncoding:
                with self.subTest(method=method, encoding=encoding):
                    descriptor = _descriptor(method, {"to": "a@b.c", "meta": {"x": 1}}, encoding)
                    code = render_python_code(descriptor, SECRET)
                    config = sanitized_config(descriptor, SECRET)
                    self.assertNotIn(SECRET, code)
                    self.assertNotIn(SECRET, json.dumps(config))
                    self.assertEqual(config["headers"]["x-pica-secret"], "${PICA_SECRET}")
                    self.assertIn('os.environ[\'PICA_SECRET\']', code)
                    self.assertIn("IMPORTANT: For the Pica secret always use the environment variable PICA_SECRET.",
                                  code)

    def test_secret_smuggled_by_caller_is_scrubbed(self):
        descriptor = _descriptor(data={"note": f"token={SECRET}"}, headers={"Authorization": SECRET},
                                 params={"key": SECRET})
        code = render_python_code(descriptor, SECRET)
        self.assertNotIn(SECRET, code)
        self.assertNotIn(SECRET, json.dumps(sanitized_config(descriptor, SECRET)))
        self.assertIn(SECRET, json.dumps(descriptor.to_dict()))

    def test_json_body_rendering(self):
        code = render_python_code(_descriptor(data={"subject": "hi"}), SECRET)
        self.assertIn('body = {"json": request_config["data"]}', code)
        self.assertIn("'subject': 'hi'", code)
        self.assertIn("'url': 'https://api.pica.test/v1/passthrough/users/me/messages'", code)
        compile(code, "<generated>", "exec")

    def test_query_values_are_kept_in_config_and_stringified_in_code(self):
        descriptor = _descriptor("GET", params={"includeSpamTrash": True, "pageToken": None})
        config = sanitized_config(descriptor, SECRET)
        self.assertEqual(config["params"], {"includeSpamTrash": True, "pageToken": None})
        code = render_python_code(descriptor, SECRET)
        self.assertIn('json.dumps(value, separators=(",", ":"))', code)
        self.assertIn("params=params,", code)
        compile(code, "<generated>", "exec")

    def test_get_rendering_has_no_body(self):
        code = render_python_code(_descriptor("GET", {"subject": "hi"}), SECRET)
        self.assertIn("body = {}", code)
        self.assertNotIn("'data'", code)
        compile(code, "<generated>", "exec")

    def test_multipart_rendering_drops_fixed_boundary(self):
        code = render_python_code(_descriptor(data={"file_name": "a.txt"}, encoding=BodyEncoding.MULTIPART), SECRET)
        self.assertIn('aiohttp.MultipartWriter("form-data")', code)
        self.assertIn("request_config[\"headers\"].pop('Content-Type', None)", code)
        compile(code, "<generated>", "exec")

    def test_urlencoded_rendering(self):
        code = render_python_code(_descriptor(data={"a": 1}, encoding=BodyEncoding.URLENCODED), SECRET)
        self.assertIn('body = {"data": request_config["data"]}', code)
        self.assertIn("'data': 'a=1'", code)
        compile(code, "<generated>", "exec")


class TestRedact(unittest.TestCase):

    def test_nested_values_and_keys(self):
        value = {"s": "xSECRETx", "l": ["SECRET", 1], "SECRET": None}
        self.assertEqual(redact(value, "SECRET"), {
            "s": "x${PICA_SECRET}x",
            "l": ["${PICA_SECRET}", 1],
            "${PICA_SECRET}": None,
        })

    def test_empty_secret_is_noop(self):
        self.assertEqual(redact({"a": "b"}, ""), {"a": "b"})


if __name__ == '__main__':
    unittest.main()
