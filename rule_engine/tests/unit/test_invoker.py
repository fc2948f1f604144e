"""Unit tests for rule_engine.checks.invoker."""

from __future__ import annotations

from pathlib import Path

import pytest

from rule_engine.checks.invoker import CheckExecutionError, build_context, has_check_function, invoke_check
from rule_engine.checks.models import CheckFinding, CheckSeverity
from rule_engine.sandbox import ScriptLoadError, ScriptSource


def _check(tmp_path: Path, text: str, name: str = "check.lua") -> ScriptSource:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return ScriptSource.read(path)


class TestHasCheckFunction:
    def test_with_check(self, tmp_path):
        assert has_check_function(_check(tmp_path, "function Check(doc) end\n")) is True

    def test_helper_module(self, tmp_path):
        assert has_check_function(_check(tmp_path, "local M = {}\nfunction M.f() end\nreturn M\n")) is False

    def test_check_that_is_not_a_function(self, tmp_path):
        assert has_check_function(_check(tmp_path, "Check = 1\n")) is False

    def test_broken_script(self, tmp_path):
        with pytest.raises(ScriptLoadError):
            has_check_function(_check(tmp_path, "function Check(\n"))


class TestBuildContext:
    def test_fields(self, tmp_path):
        context = build_context(tmp_path / "pod.lua", tmp_path / "pod.yaml", 0, 3)
        assert context == {
            "check_file": str((tmp_path / "pod.lua").resolve()),
            "document_file": str((tmp_path / "pod.yaml").resolve()),
            "document_index": 1,
            "document_count": 3,
        }


class TestInvokeCheck:
    def test_empty_sequence_has_no_findings(self, tmp_path):
        source = _check(tmp_path, "function Check(doc) return {} end\n")
        assert invoke_check(source, [{"foo": "bar"}], tmp_path / "data.json") == []

    def test_string_is_one_error(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) return "bad" end\n')
        findings = invoke_check(source, [{"foo": "bar"}], tmp_path / "data.json")
        assert findings == [CheckFinding(severity=CheckSeverity.ERROR, message="bad")]

    def test_runtime_error_is_fatal(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) error("kaboom") end\n')
        with pytest.raises(CheckExecutionError, match="runtime error") as excinfo:
            invoke_check(source, [{"foo": "bar"}], tmp_path / "data.json")
        assert "kaboom" in str(excinfo.value)
        assert excinfo.value.check_file == source.path

    def test_failed_assert_in_check_is_fatal(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) assert(doc.name, "name required") end\n')
        with pytest.raises(CheckExecutionError, match="name required"):
            invoke_check(source, [{}], tmp_path / "data.json")

    def test_invalid_return_value(self, tmp_path):
        source = _check(tmp_path, "function Check(doc) return 42 end\n")
        with pytest.raises(CheckExecutionError, match="invalid value returned"):
            invoke_check(source, [{}], tmp_path / "data.json")

    def test_invalid_severity(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) return { message = "x", severity = "info" } end\n')
        with pytest.raises(CheckExecutionError, match="invalid severity level: info"):
            invoke_check(source, [{}], tmp_path / "data.json")

    def test_documents_and_context(self, tmp_path):
        source = _check(
            tmp_path,
            """
function Check(doc, ctx)
  return {
    severity = "warning",
    doc.kind .. " " .. ctx.document_index .. "/" .. ctx.document_count,
  }
end
""",
        )
        documents = [{"kind": "Pod"}, {"kind": "Service"}]
        findings = invoke_check(source, documents, tmp_path / "multi.yaml")
        assert findings == [
            CheckFinding(severity=CheckSeverity.WARNING, message="Pod 1/2"),
            CheckFinding(severity=CheckSeverity.WARNING, message="Service 2/2"),
        ]

    def test_each_document_gets_a_fresh_runtime(self, tmp_path):
        source = _check(
            tmp_path,
            """
seen = 0
function Check(doc)
  seen = seen + 1
  return "seen " .. seen
end
""",
        )
        findings = invoke_check(source, [{}, {}, {}], tmp_path / "data.yaml")
        assert [f.message for f in findings] == ["seen 1", "seen 1", "seen 1"]

    def test_nested_result(self, tmp_path):
        source = _check(
            tmp_path,
            """
function Check(doc)
  local problems = {}
  for _, container in ipairs(doc.containers) do
    if not container.image:find(":") then
      table.insert(problems, { message = container.name .. " has no tag", severity = "warning" })
    end
    if container.privileged then
      table.insert(problems, container.name .. " is privileged")
    end
  end
  return problems
end
""",
        )
        document = {
            "containers": [
                {"name": "web", "image": "nginx", "privileged": True},
                {"name": "db", "image": "postgres:16"},
            ]
        }
        findings = invoke_check(source, [document], tmp_path / "pod.json")
        assert [str(f) for f in findings] == ["[warning] web has no tag", "[error] web is privileged"]

    def test_no_documents(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) return "never" end\n')
        assert invoke_check(source, [], tmp_path / "empty.yaml") == []

    @pytest.mark.parametrize(
        "body",
        [
            "return string.char(255)",
            "return { message = string.char(255) }",
            "return { string.char(255) }",
        ],
    )
    def test_returned_string_with_invalid_utf8(self, tmp_path, body):
        source = _check(tmp_path, f"function Check(doc) {body} end\n")
        with pytest.raises(CheckExecutionError, match="invalid value returned") as excinfo:
            invoke_check(source, [{"a": 1}], tmp_path / "data.json")
        assert "not valid UTF-8" in str(excinfo.value)

    def test_error_message_with_invalid_utf8(self, tmp_path):
        source = _check(tmp_path, 'function Check(doc) error("bad " .. string.char(255)) end\n')
        with pytest.raises(CheckExecutionError, match="runtime error") as excinfo:
            invoke_check(source, [{"a": 1}], tmp_path / "data.json")
        assert "bad \\xFF" in str(excinfo.value)

    def test_numeric_subject_for_matches(self, tmp_path):
        source = _check(
            tmp_path,
            'local rc = require("@rulecheck")\n'
            'function Check(doc) if not rc.Matches(doc.port, "^[0-9]+$") then return "bad port" end end\n',
        )
        assert invoke_check(source, [{"port": 8080}], tmp_path / "svc.json") == []
