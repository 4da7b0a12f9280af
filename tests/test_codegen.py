"""Tests for generated suites: their code, and how they behave when run."""

import asyncio

import pytest

from statebook.builder import compile_spec
from statebook.compiler.ir import ConfigureStep
from statebook.config import GeneratorConfig, StatebookConfig
from statebook.diagnostics import MarkerError
from statebook.runtime import NodeStatus

SPEC_AB = """\
# A

```
hello|
```

# B
[up](#A)

- insert.a

```
helloX|
```
"""

# B expects the wrong document: C and D must skip, E still runs.
SPEC_CASCADE = """\
# A
```
ab|
```

# B
[up](#A)
- insert.a
```
wrong|
```

# C
[up](#B)
- insert.a
```
abXX|
```

# D
[up](#C)
- insert.a
```
abXXX|
```

# E
[up](#A)
- dance.select.right
```
ab|
```
"""


class TestGeneratedModule:
    def test_single_transition(self):
        suite = compile_spec(SPEC_AB, "ab.md")

        assert suite.setups == ["A"]
        assert [test.label for test in suite.tests] == ["A > B"]
        assert [test.function for test in suite.tests] == ["test_a_to_b"]

    def test_code_declares_states_in_order(self):
        code = compile_spec(SPEC_CASCADE, "cascade.md").code

        positions = [code.index(f'states.declare("{t}"') for t in "BCDE"]
        assert positions == sorted(positions)
        assert 'states.seed(\n    "A",' in code
        assert 'SUITE = "cascade.md"' in code

    def test_code_compiles(self):
        code = compile_spec(SPEC_CASCADE, "cascade.md").code

        compile(code, "cascade_test.py", "exec")

    def test_module_fixture_uses_host_fixture(self):
        config = StatebookConfig(generator=GeneratorConfig(host_fixture="vscode_host"))
        code = compile_spec(SPEC_AB, "ab.md", config).code

        assert "async def editor(vscode_host):" in code
        assert "editor = await vscode_host.open_editor()" in code
        assert '@pytest_asyncio.fixture(scope="module", loop_scope="module")' in code

    def test_default_behavior_is_configured_on_open(self):
        code = compile_spec(SPEC_AB, "ab.md").code

        assert (
            'await editor.execute_command("dance.dev.setSelectionBehavior", {"mode": "normal", "value": "caret"})'
            in code
        )

    def test_imports_only_what_is_used(self):
        code = compile_spec("# A\n```\nx\n```\n# B\n[up](#A)\n```\nx\n```\n", "plain.md").code

        assert "import asyncio" not in code
        assert "from statebook.document import DocumentState\n" in code
        assert "from statebook.runtime import StateGraph\n" in code

    def test_groups_use_joined_and_staggered(self):
        code = compile_spec("# A\n```\n|\n```\n# B\n[up](#A)\n- insert.a\n- type:b\n```\n|\n```\n", "g.md").code

        assert "import asyncio" not in code
        assert "from statebook.runtime import StateGraph, joined, staggered\n" in code
        assert "await joined(" in code
        assert 'staggered(20, editor.execute_command, "type", {"text": "b"}),' in code

    def test_timeout(self):
        config = StatebookConfig(generator=GeneratorConfig(wait_timeout_ms=500))
        code = compile_spec(SPEC_AB, "ab.md", config).code

        assert 'before = await states.wait("A", timeout_ms=500)' in code

    def test_no_timeout_by_default(self):
        code = compile_spec(SPEC_AB, "ab.md").code

        assert "timeout_ms" not in code

    def test_function_names_are_unique(self):
        suite = compile_spec("# A\n```\nx\n```\n# x.y\n[up](#A)\n```\nx\n```\n# x_y\n[up](#A)\n```\nx\n```\n", "u.md")

        assert [test.function for test in suite.tests] == ["test_a_to_x_y", "test_a_to_x_y_2"]

    def test_titles_with_quotes(self):
        suite = compile_spec('# say "hi"\n```\nx\n```\n# done\n[up](#say-"hi")\n```\nx\n```\n', "q.md")

        compile(suite.code, "q_test.py", "exec")
        assert suite.tests[0].comes_after == 'say-"hi"'

    def test_flags_become_configure_steps(self):
        suite = compile_spec(
            "# A\n```\n|\n```\n# B\n[up](#A)\n- insert.a\n> insert.behavior <- character\n```\nX|\n```\n",
            "f.md",
        )

        first, second = suite.tests[0].steps
        assert isinstance(first, ConfigureStep)
        assert (
            'await editor.execute_command("dance.dev.setSelectionBehavior", {"mode": "insert", "value": "character"})'
            in suite.code
        )

    def test_marker_error_names_entry(self):
        with pytest.raises(MarkerError) as exc:
            compile_spec("# A\n```\nx\n```\n# B\n[up](#A)\n```\n[|x\n```\n", "m.md")

        assert exc.value.title == "B"
        assert '"B"' in str(exc.value)


class TestRunningSuites:
    @pytest.mark.asyncio
    async def test_passing_transition(self, load_suite, editor):
        harness = load_suite(SPEC_AB)

        outcomes = await harness.run(editor)

        assert outcomes == {"test_a_to_b": "passed"}
        assert harness.states.status("B") is NodeStatus.RESOLVED
        assert editor.get_state().render() == "helloX|"

    @pytest.mark.asyncio
    async def test_failure_skips_dependents_only(self, load_suite, editor):
        harness = load_suite(SPEC_CASCADE)

        outcomes = await harness.run(editor)

        assert outcomes == {
            "test_a_to_b": "failed",
            "test_b_to_c": "skipped",
            "test_c_to_d": "skipped",
            "test_a_to_e": "passed",
        }
        assert harness.states.status("B") is NodeStatus.FAILED
        assert harness.states.status("C") is NodeStatus.SKIPPED
        assert harness.states.status("D") is NodeStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_each_test_starts_from_its_predecessor(self, load_suite, editor):
        harness = load_suite(
            "# A\n```\nab|\n```\n"
            "# B\n[up](#A)\n- insert.a\n```\nabX|\n```\n"
            "# C\n[up](#A)\n- insert.a\n```\nabX|\n```\n"
        )

        outcomes = await harness.run(editor)

        assert set(outcomes.values()) == {"passed"}

    @pytest.mark.asyncio
    async def test_configure_step_runs_before_operations(self, load_suite, editor):
        harness = load_suite(
            "# A\n```\n|\n```\n# B\n[up](#A)\n- insert.a\n> normal.behavior <- character\n```\nX|\n```\n"
        )

        await harness.run(editor)

        assert editor.history == [
            ("dance.dev.setSelectionBehavior", ({"mode": "normal", "value": "character"},)),
            ("insert.a", ()),
        ]

    @pytest.mark.asyncio
    async def test_typed_characters_arrive_while_command_runs(self, load_suite, editor):
        seen = []

        async def wait_for_input(editor, *args):
            await asyncio.sleep(0.2)
            seen.append(editor.get_state().text)

        editor.register("wait.input", wait_for_input)
        harness = load_suite("# A\n```\n|\n```\n# B\n[up](#A)\n- wait.input\n- type:a\n- type:b\n```\nab|\n```\n")

        outcomes = await harness.run(editor)

        assert outcomes == {"test_a_to_b": "passed"}
        assert seen == ["ab"]
        assert [command for command, _ in editor.history] == ["wait.input", "type", "type"]

    @pytest.mark.asyncio
    async def test_unknown_command_is_an_error(self, load_suite, editor):
        harness = load_suite("# A\n```\n|\n```\n# B\n[up](#A)\n- missing.command\n```\n|\n```\n# C\n[up](#B)\n```\n|\n```\n")

        outcomes = await harness.run(editor)

        assert outcomes == {"test_a_to_b": "error", "test_b_to_c": "skipped"}

    @pytest.mark.asyncio
    async def test_failing_group_settles_before_next_test(self, load_suite, editor):
        async def fail(editor, *args):
            raise RuntimeError("command failed")

        async def wait_a_little(editor, *args):
            await asyncio.sleep(0.1)

        editor.register("fail.now", fail)
        editor.register("wait.little", wait_a_little)
        harness = load_suite(
            "# A\n```\nab|\n```\n"
            "# B\n[up](#A)\n- fail.now\n- type:z\n```\nabz|\n```\n"
            "# C\n[up](#A)\n- wait.little\n```\nab|\n```\n"
        )

        outcomes = await harness.run(editor)

        assert outcomes == {"test_a_to_b": "error", "test_a_to_c": "passed"}
        assert editor.get_state().render() == "ab|"
