"""Unit tests for agentctx.memory.filter module."""

from conftest import assistant, tool_call, tool_result, user

from agentctx.memory.filter import ContextFilter, filter_by_tool_call_ids, read_key
from agentctx.memory.types import CompactionPolicy
from agentctx.messages.validate import validate_model_messages
from agentctx.types.messages import (
    AssistantModelMessage,
    TextPart,
    ToolCallPart,
    ToolModelMessage,
    tool_call_parts,
)

# -- Helpers ------------------------------------------------------------------


def call_ids(messages) -> list[str]:
    return [c.tool_call_id for m in messages for c in tool_call_parts(m)]


def padding(count: int) -> list:
    return [user(f"note {i}") if i % 2 == 0 else assistant(f"ack {i}") for i in range(count)]


# -- read_key -----------------------------------------------------------------


class TestReadKey:
    """Tests for read_key."""

    def test_path_aliases(self):
        for field in ("file_path", "filePath", "path"):
            call = ToolCallPart(tool_call_id="c", tool_name="readFile", input={field: "a.py"})
            assert read_key(call) == "a.py:full:full"

    def test_line_range(self):
        call = ToolCallPart(
            tool_call_id="c",
            tool_name="readFile",
            input={"file_path": "a.py", "start_line": 10, "line_count": 5},
        )
        assert read_key(call) == "a.py:10:5"

    def test_json_string_input(self):
        call = ToolCallPart(tool_call_id="c", tool_name="readFile", input='{"path": "b.py"}')
        assert read_key(call) == "b.py:full:full"

    def test_no_path(self):
        call = ToolCallPart(tool_call_id="c", tool_name="readFile", input={"pattern": "x"})
        assert read_key(call) is None


# -- filter_by_tool_call_ids --------------------------------------------------


class TestFilterByToolCallIds:
    """Tests for filter_by_tool_call_ids."""

    def test_removes_pair(self):
        messages = [user("go"), tool_call("c1", "glob"), tool_result("c1", "glob")]
        assert filter_by_tool_call_ids(messages, {"c1"}) == [user("go")]

    def test_part_wise_removal_keeps_other_calls(self):
        turn = AssistantModelMessage(
            content=[
                TextPart(text="Two things."),
                ToolCallPart(tool_call_id="c1", tool_name="glob"),
                ToolCallPart(tool_call_id="c2", tool_name="readFile"),
            ]
        )
        results = ToolModelMessage(
            content=[*tool_result("c1", "glob").content, *tool_result("c2", "readFile").content]
        )
        result = filter_by_tool_call_ids([user("go"), turn, results], {"c1"})
        assert call_ids(result) == ["c2"]
        assert result[1].content[0] == TextPart(text="Two things.")
        assert [r.tool_call_id for r in result[2].content] == ["c2"]

    def test_text_only_turn_left_after_removal_is_dropped(self):
        messages = [
            user("go"),
            tool_call("c1", "glob", text="Searching."),
            tool_result("c1", "glob"),
            assistant("done"),
        ]
        result = filter_by_tool_call_ids(messages, {"c1"})
        assert result == [user("go"), assistant("done")]

    def test_untouched_messages_are_kept(self):
        messages = [user("go"), assistant("plain")]
        assert filter_by_tool_call_ids(messages, {"c1"}) == messages


# -- ContextFilter ------------------------------------------------------------


class TestContextFilter:
    """Tests for ContextFilter.filter_messages."""

    def test_keeps_latest_duplicate_read(self):
        messages = [
            user("look"),
            tool_call("r1", "readFile", {"file_path": "a.py"}),
            tool_result("r1", "readFile", "v1"),
            tool_call("r2", "readFile", {"filePath": "a.py"}),
            tool_result("r2", "readFile", "v2"),
        ]
        result = ContextFilter().filter_messages(messages)
        assert call_ids(result) == ["r2"]
        assert validate_model_messages(result).valid

    def test_different_ranges_are_not_duplicates(self):
        messages = [
            user("look"),
            tool_call("r1", "readFile", {"file_path": "a.py", "start_line": 1}),
            tool_result("r1", "readFile"),
            tool_call("r2", "readFile", {"file_path": "a.py", "start_line": 50}),
            tool_result("r2", "readFile"),
        ]
        assert call_ids(ContextFilter().filter_messages(messages)) == ["r1", "r2"]

    def test_exploratory_calls_outside_window_removed(self):
        old = [
            user("find"),
            tool_call("g1", "glob", {"pattern": "*.py"}),
            tool_result("g1", "glob"),
        ]
        recent = [
            tool_call("g2", "codeSearch", {"query": "main"}),
            tool_result("g2", "codeSearch"),
        ]
        policy = CompactionPolicy(exploratory_protection_window=4)
        messages = old + padding(2) + recent
        result = ContextFilter(policy).filter_messages(messages)
        assert call_ids(result) == ["g2"]

    def test_exploratory_calls_inside_window_kept(self):
        messages = [user("find"), tool_call("g1", "glob"), tool_result("g1", "glob")]
        assert call_ids(ContextFilter().filter_messages(messages)) == ["g1"]

    def test_exact_duplicate_calls_keep_latest(self):
        messages = [
            user("run"),
            tool_call("b1", "bash", {"command": "ls", "cwd": "/"}),
            tool_result("b1", "bash"),
            tool_call("b2", "bash", {"cwd": "/", "command": "ls"}),
            tool_result("b2", "bash"),
            tool_call("b3", "bash", {"command": "pwd"}),
            tool_result("b3", "bash"),
        ]
        result = ContextFilter().filter_messages(messages)
        assert call_ids(result) == ["b2", "b3"]

    def test_nothing_to_filter_returns_copy(self):
        messages = [user("hi"), assistant("hello")]
        result = ContextFilter().filter_messages(messages)
        assert result == messages
        assert result is not messages

    def test_custom_read_tools(self):
        policy = CompactionPolicy(read_tool_names=("cat",))
        messages = [
            user("look"),
            tool_call("r1", "cat", {"path": "a.py"}),
            tool_result("r1", "cat", "v1"),
            user("again"),
            tool_call("r2", "cat", {"filePath": "a.py"}),
            tool_result("r2", "cat", "v2"),
        ]
        assert call_ids(ContextFilter(policy).filter_messages(messages)) == ["r2"]
