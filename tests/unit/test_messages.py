"""Unit tests for Request protocol type."""

from __future__ import annotations

from clj_nrepl.protocol.bencode import decode, encode
from clj_nrepl.protocol.messages import Op, Request


class TestRequestCreation:
    """Test Request creation and basic properties."""

    def test_create_with_op_enum(self):
        request = Request.create(Op.EVAL, {"code": "1"})

        assert request.op == "eval"
        assert request.params == {"code": "1"}

    def test_create_with_string_op(self):
        request = Request.create("describe")

        assert request.op == "describe"
        assert request.params == {}

    def test_get_param_treats_none_as_absent(self):
        request = Request.create("x", {"a": None, "b": 2})

        assert request.get_param("a", "default") == "default"
        assert request.get_param("b") == 2


class TestAbsentKeys:
    """None-valued params never reach the wire."""

    def test_to_wire_drops_none(self):
        request = Request.create(Op.EVAL, {"code": "(+ 1 2)", "session": None})

        assert request.to_wire() == {"op": "eval", "code": "(+ 1 2)"}

    def test_encoded_request_has_no_session_key(self):
        request = Request.create(Op.EVAL, {"code": "(+ 1 2)", "session": None})

        decoded = decode(encode(request.to_wire()))

        assert decoded == {"op": "eval", "code": "(+ 1 2)"}
        assert b"session" not in encode(request.to_wire())

    def test_falsy_values_are_kept(self):
        request = Request.create("x", {"zero": 0, "empty": "", "none": None})

        assert request.to_wire() == {"op": "x", "zero": 0, "empty": ""}

    def test_op_comes_first(self):
        request = Request.info("map", "user", "s1")

        assert list(request.to_wire()) == ["op", "symbol", "ns", "session"]


class TestRequestFactories:
    """Test per-op factory methods."""

    def test_clone_without_session(self):
        assert Request.clone().to_wire() == {"op": "clone"}

    def test_clone_with_parent(self):
        assert Request.clone("parent").to_wire() == {"op": "clone", "session": "parent"}

    def test_close(self):
        assert Request.close("s1").to_wire() == {"op": "close", "session": "s1"}
        assert Request.close().to_wire() == {"op": "close"}

    def test_ls_sessions(self):
        assert Request.ls_sessions().to_wire() == {"op": "ls-sessions"}

    def test_eval(self):
        assert Request.eval("(inc 1)", "s1").to_wire() == {
            "op": "eval",
            "code": "(inc 1)",
            "session": "s1",
        }

    def test_load_file(self):
        wire = Request.load_file("(ns a)", "s1", "/src/a.clj").to_wire()

        assert wire == {
            "op": "load-file",
            "file": "(ns a)",
            "file-path": "/src/a.clj",
            "session": "s1",
        }

    def test_load_file_without_path(self):
        wire = Request.load_file("(ns a)", "s1").to_wire()

        assert "file-path" not in wire

    def test_complete(self):
        assert Request.complete("ma", "user").to_wire() == {
            "op": "complete",
            "symbol": "ma",
            "ns": "user",
        }
        assert Request.complete("ma").to_wire() == {"op": "complete", "symbol": "ma"}

    def test_info(self):
        assert Request.info("map").to_wire() == {"op": "info", "symbol": "map"}

    def test_stacktrace(self):
        assert Request.stacktrace("s1").to_wire() == {"op": "stacktrace", "session": "s1"}

    def test_run_tests_with_namespace(self):
        assert Request.run_tests("my.ns-test").to_wire() == {
            "op": "test",
            "ns": "my.ns-test",
            "load?": 1,
        }

    def test_run_tests_without_namespace(self):
        assert Request.run_tests().to_wire() == {"op": "test-all", "load?": 1}

    def test_run_tests_empty_namespace_runs_all(self):
        assert Request.run_tests("").to_wire() == {"op": "test-all", "load?": 1}
