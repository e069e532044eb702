"""Tests for agentjob.panels module."""

import pytest

from agentjob.errors import ArgumentError
from agentjob.panels import (
    CmdExecEditor,
    CommandEditor,
    PowerShellEditor,
    PropertiesPanel,
    StepsPanel,
    TransactSqlEditor,
    editor_for,
)
from agentjob.schemas import CompletionAction, JobStep, SubSystem
from agentjob.step_graph import StepGraph
from agentjob.validator import StepValidator


class TestEditorFor:

    @pytest.mark.parametrize("subsystem, editor_class", [
        (SubSystem.TRANSACT_SQL, TransactSqlEditor),
        ("CmdExec", CmdExecEditor),
        ("powershell", PowerShellEditor),
        (SubSystem.SSIS, CommandEditor),
    ])
    def test_registered_editors(self, subsystem, editor_class):
        editor = editor_for(subsystem)
        assert type(editor) is editor_class
        assert isinstance(editor, PropertiesPanel)


class TestTransactSqlEditor:

    def test_load_and_save(self):
        step = JobStep(name="a", command="SELECT 1", database_name="warehouse")
        editor = TransactSqlEditor()
        editor.load(step)
        assert editor.values == {"command": "SELECT 1", "database_name": "warehouse"}

        editor.values["command"] = "SELECT 2"
        editor.values["database_name"] = "  "
        editor.save(step, is_switching=False)

        assert step.command == "SELECT 2"
        assert step.database_name == "master"


class TestCmdExecEditor:

    def test_exit_code_round_trip(self):
        step = JobStep(name="a", subsystem="CmdExec", command_execution_success_code=3)
        editor = CmdExecEditor()
        editor.load(step)
        assert editor.values["process_exit_code"] == "3"

        editor.values["process_exit_code"] = " 7 "
        editor.save(step, is_switching=False)
        assert step.command_execution_success_code == 7

    def test_blank_exit_code_is_zero(self):
        step = JobStep(name="a", command_execution_success_code=3)
        editor = CmdExecEditor()
        editor.load(step)
        editor.values["process_exit_code"] = ""
        editor.save(step, is_switching=False)
        assert step.command_execution_success_code == 0

    def test_non_numeric_exit_code(self):
        step = JobStep(name="a")
        editor = CmdExecEditor()
        editor.load(step)
        editor.values["process_exit_code"] = "ok"
        with pytest.raises(ArgumentError):
            editor.save(step, is_switching=False)


class TestSwitchingSubsystem:

    def test_only_command_carries_over(self):
        step = JobStep(name="a", command="SELECT 1", database_name="warehouse")
        editor = TransactSqlEditor()
        editor.load(step)
        editor.values["command"] = "dir"
        editor.values["database_name"] = "other"

        editor.save(step, is_switching=True)

        assert step.command == "dir"
        assert step.database_name == "warehouse"


class TestStepsPanel:

    def _panel(self, confirm=None):
        graph = StepGraph([JobStep(name="a"), JobStep(name="b")])
        graph.set_success_action(graph.get(1), CompletionAction.QUIT_WITH_SUCCESS)
        return graph, StepsPanel(StepValidator(graph), confirm)

    def test_commit_does_not_validate(self):
        graph, panel = self._panel()
        assert panel.save(graph, is_switching=False) is True

    def test_switch_away_blocked_by_warnings(self):
        graph, panel = self._panel()
        assert panel.save(graph, is_switching=True) is False

    def test_confirmed_switch_not_asked_again(self):
        asked = []
        graph, panel = self._panel(confirm=lambda report: asked.append(report) or True)

        assert panel.save(graph, is_switching=True) is True
        assert panel.save(graph, is_switching=True) is True
        assert len(asked) == 1

    def test_load_resets_confirmation(self):
        asked = []
        graph, panel = self._panel(confirm=lambda report: asked.append(report) or True)
        panel.save(graph, is_switching=True)

        panel.load(graph)
        panel.save(graph, is_switching=True)

        assert len(asked) == 2
