from flowmate.server.models import RunStatus, StepStatus, WorkflowConfig

from .conftest import SendModule


def _config(*steps):
    return WorkflowConfig.model_validate({"steps": list(steps)})


def test_outputs_flow_downstream_with_native_types(executor):
    result = executor.execute(
        _config(
            {"id": "items", "module": "test.util.items"},
            {"id": "echo", "module": "test.util.echo", "inputs": {"value": "{{ steps.items.items }}"}},
        ),
        "u1",
    )
    assert result.status == RunStatus.COMPLETED
    assert result.outputs["echo"] == {"value": [{"n": 1}, {"n": 2}]}


def test_step_ids_default_to_position(executor):
    result = executor.execute(
        {"steps": [{"module": "test.util.items"}, {"module": "test.util.echo", "inputs": {"value": "{{ steps.step_0.items[1].n }}"}}]},
        "u1",
    )
    assert result.status == RunStatus.COMPLETED
    assert result.outputs["step_1"] == {"value": 2}


def test_run_context_is_exposed_as_input(executor):
    result = executor.execute(
        _config({"id": "echo", "module": "test.util.echo", "inputs": {"value": "said: {{ input.user_input }}"}}),
        "u1",
        context={"user_input": "hi"},
    )
    assert result.outputs["echo"] == {"value": "said: hi"}


def test_dry_run_substitutes_mock_output_for_side_effects(executor):
    result = executor.execute(
        _config(
            {"id": "send", "module": "test.util.send", "inputs": {"text": "hello"}},
            {"id": "echo", "module": "test.util.echo", "inputs": {"value": "{{ steps.send.message_id }}"}},
        ),
        "u1",
        dry_run=True,
        credentials={"slack": {"bot_token": "xoxb-explicit"}},
    )
    assert result.status == RunStatus.COMPLETED
    assert SendModule.sent == []
    assert result.steps[0].dry_run is True
    assert result.steps[1].dry_run is False
    assert result.outputs["echo"] == {"value": "mock-id"}


def test_real_run_uses_resolved_credentials(executor, db):
    db.credential_repo.save("u1", "slack", fields={"bot_token": "xoxb-stored"})
    result = executor.execute(_config({"id": "send", "module": "test.util.send", "inputs": {"text": "hi"}}), "u1")
    assert result.status == RunStatus.COMPLETED
    assert SendModule.sent == [{"text": "hi", "token": "xoxb-stored"}]


def test_missing_credentials_fail_the_step(executor):
    result = executor.execute(_config({"id": "send", "module": "test.util.send", "inputs": {"text": "hi"}}), "u1")
    assert result.status == RunStatus.FAILED
    assert result.error["code"] == "credential_missing"
    assert result.error["platform"] == "slack"
    assert SendModule.sent == []


def test_abort_stops_run_and_skips_remaining_steps(executor):
    result = executor.execute(
        _config(
            {"id": "fail", "module": "test.util.fail"},
            {"id": "echo", "module": "test.util.echo", "inputs": {"value": 1}},
        ),
        "u1",
    )
    assert result.status == RunStatus.FAILED
    assert result.failed_step == {"index": 0, "id": "fail", "path": "test.util.fail"}
    assert result.error["code"] == "step_failed"
    assert "sk-abcdefghijklmnopqrstuvwxyz" not in result.error["message"]
    assert [s.status for s in result.steps] == [StepStatus.FAILED, StepStatus.SKIPPED]


def test_continue_policy_keeps_going_and_reports_partial(executor):
    result = executor.execute(
        _config(
            {"id": "fail", "module": "test.util.fail", "on_error": "continue"},
            {"id": "echo", "module": "test.util.echo", "inputs": {"value": "ok"}},
        ),
        "u1",
    )
    assert result.status == RunStatus.PARTIAL
    assert result.failed_step is None
    assert "fail" not in result.outputs
    assert result.outputs["echo"] == {"value": "ok"}


def test_binding_to_failed_continue_step_is_invalid_binding(executor):
    result = executor.execute(
        _config(
            {"id": "fail", "module": "test.util.fail", "on_error": "continue"},
            {"id": "echo", "module": "test.util.echo", "inputs": {"value": "{{ steps.fail.value }}"}},
        ),
        "u1",
    )
    assert result.status == RunStatus.FAILED
    assert result.failed_step["id"] == "echo"
    assert result.error["code"] == "invalid_binding"


def test_forward_reference_is_rejected_before_any_step_runs(executor):
    result = executor.execute(
        _config(
            {"id": "send", "module": "test.util.send", "inputs": {"text": "{{ steps.later.value }}"}},
            {"id": "later", "module": "test.util.echo", "inputs": {"value": 1}},
        ),
        "u1",
        credentials={"slack": {"bot_token": "xoxb"}},
    )
    assert result.status == RunStatus.FAILED
    assert result.error["code"] == "invalid_binding"
    assert result.failed_step == {"index": 0, "id": "send", "path": "test.util.send"}
    assert len(result.steps) == 1
    assert SendModule.sent == []


def test_unknown_module_fails_with_module_not_found(executor):
    result = executor.execute(_config({"id": "x", "module": "test.util.nope"}), "u1")
    assert result.status == RunStatus.FAILED
    assert result.error["code"] == "module_not_found"


def test_missing_required_input_fails_validation(executor):
    result = executor.execute(_config({"id": "echo", "module": "test.util.echo"}), "u1")
    assert result.status == RunStatus.FAILED
    assert result.error["code"] == "step_failed"
    assert "Required input 'value' missing" in result.error["message"]


def test_runs_are_recorded(executor, db):
    executor.execute(
        _config({"id": "items", "module": "test.util.items"}), "u1", workflow_id="wf_1"
    )
    runs = db.workflow_repo.list_runs("wf_1")
    assert len(runs) == 1
    assert runs[0]["status"] == "completed"
    assert runs[0]["steps"][0]["outputs"] == {"items": [{"n": 1}, {"n": 2}]}


def test_find_invalid_reference(executor):
    config = _config(
        {"id": "a", "module": "test.util.items"},
        {"id": "b", "module": "test.util.echo", "inputs": {"value": "{{ steps.ghost.x }}"}},
    )
    invalid = executor.find_invalid_reference(config)
    assert invalid.step_id == "b"
    assert "unknown step" in invalid.reason
