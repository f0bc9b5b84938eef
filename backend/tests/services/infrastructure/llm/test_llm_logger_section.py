import json

from promptmotion.core.llm_logger import LLMLogger, llm_turn_log


def test_turn_log_writes_full_prompt_and_response(tmp_path):
    log_path = tmp_path / "turn_abc.jsonl"
    logger = LLMLogger(max_prompt_length=5, max_response_length=5, console_logging=False)

    full_prompt = "This is a full prompt that should not be truncated."
    full_response = "This is a full response that should not be truncated."

    with llm_turn_log(log_path, {"turn_id": "abc", "follow_up": False}):
        request_id = logger.log_request(
            model="test-model",
            contents=full_prompt,
            config={"temperature": 0.1},
            system_instruction="system",
        )
        logger.log_response(
            request_id=request_id,
            response=full_response,
            success=True,
            metadata={"streamed": True},
        )

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2

    request_record = json.loads(lines[0])
    response_record = json.loads(lines[1])

    assert request_record["event"] == "llm_request"
    assert request_record["prompt"] == full_prompt
    assert request_record["system_instruction"] == "system"
    assert request_record["turn_context"]["turn_id"] == "abc"

    assert response_record["event"] == "llm_response"
    assert response_record["request_id"] == request_id
    assert response_record["response_text"] == full_response
    assert response_record["metadata"] == {"streamed": True}


def test_no_turn_log_outside_scope(tmp_path):
    log_path = tmp_path / "turn.jsonl"
    logger = LLMLogger(console_logging=False)

    with llm_turn_log(log_path):
        pass
    logger.log_request(model="m", contents="prompt")

    assert not log_path.exists()


def test_error_is_recorded(tmp_path):
    log_path = tmp_path / "turn.jsonl"
    logger = LLMLogger(console_logging=False)

    with llm_turn_log(log_path):
        request_id = logger.log_request(model="m", contents=["part one", "part two"])
        logger.log_error(request_id, RuntimeError("503"))

    request_record, response_record = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert request_record["prompt"] == "part one\npart two"
    assert response_record["success"] is False
    assert response_record["error"] == "503"


def test_prompt_truncation_for_console_records():
    logger = LLMLogger(max_prompt_length=5, console_logging=False)
    assert logger._truncate_text("abcdefgh", 5) == "abcde... [truncated, total: 8 chars]"
    assert logger._truncate_text(None, 5) == ""
