"""End-to-end tests for the ReAct loop with a scripted model and transport."""

import threading

import pytest

from react_host.core.agent.dispatcher import CapabilityDispatcher
from react_host.core.agent.executor import ExecutorConfig, ReActOrchestrator, RunStatus
from react_host.core.primitives import MessageRole, RemoteCallFailed
from react_host.core.streaming.events import EventSubscriptionManager, StreamChunk
from react_host.llm import LLMClient


ACTION_XY = '<thought>ask X</thought><action>send_to_agent(agent_name="X", skill_name="Y", message="hi")</action>'
FINAL_42 = "<thought>easy</thought><final_answer>42</final_answer>"


@pytest.fixture
def make_orchestrator(streamer, transport):
    def factory(llm, *, transport_override=None, **config):
        config.setdefault("completion_timeout", 5)
        return ReActOrchestrator(
            llm,
            CapabilityDispatcher(transport_override or transport),
            events=EventSubscriptionManager(),
            streamer=streamer,
            config=ExecutorConfig(**config),
        )

    return factory


@pytest.mark.asyncio
async def test_final_answer_on_first_turn(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm([FINAL_42])

    outcome = await make_orchestrator(llm).run("what is 6*7?", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.ANSWERED
    assert outcome.final_answer == "42"
    assert outcome.turns == 1
    assert sink.completions == ["42"]
    assert transport.calls == []
    assert sink.text == "#### Thought: \neasy\n42"
    assert sink.chunks[-1] == "\r"


@pytest.mark.asyncio
async def test_action_then_final_answer(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm([ACTION_XY, "<thought>done</thought><final_answer>X said pong</final_answer>"])

    outcome = await make_orchestrator(llm).run("ping X", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.ANSWERED
    assert outcome.turns == 2
    assert len(transport.calls) == 1
    assert transport.calls[0]["text"] == "hi"
    assert transport.calls[0]["skill_id"] == "skill-y"
    assert sink.completions == ["X said pong"]
    assert "#### A2A Server Response: " in sink.text
    assert "**Discovered Server Name:** X" in sink.text
    assert "Invocation completed" in sink.text


@pytest.mark.asyncio
async def test_context_grows_with_numbered_observations(make_orchestrator, scripted_llm, registry, sink):
    llm = scripted_llm([ACTION_XY, ACTION_XY, FINAL_42])

    outcome = await make_orchestrator(llm).run("twice", registry, sink.on_chunk, sink.on_complete)

    first, second, third = llm.calls
    assert len(first) == 2
    assert len(second) == 3
    assert len(third) == 4
    # The system prompt never changes between iterations.
    assert first[0] == second[0] == third[0]
    assert first[0].role is MessageRole.SYSTEM
    assert first[1].content == "<question>twice</question>"
    assert third[2].content == "<observation>1. pong</observation>"
    assert third[3].content == "<observation>2. pong</observation>"
    assert [observation.iteration for observation in outcome.observations] == [1, 2]
    assert list(outcome.context) == third


@pytest.mark.asyncio
async def test_budget_exhaustion_is_silent(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm([ACTION_XY] * 8)

    outcome = await make_orchestrator(llm).run("loop forever", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.EXHAUSTED
    assert outcome.turns == 8
    assert len(transport.calls) == 8
    assert len(llm.calls) == 8
    assert sink.completions == []
    assert "Error" not in sink.text


@pytest.mark.asyncio
async def test_custom_iteration_budget(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm([ACTION_XY] * 3)

    outcome = await make_orchestrator(llm, max_iterations=2).run("q", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.EXHAUSTED
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_response_without_action_or_answer_fails(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm(["<thought>hmm</thought>"])

    outcome = await make_orchestrator(llm).run("q", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.FAILED
    assert "#### Thought: \nhmm\n" in sink.text
    assert "#### Error: \n" in sink.text
    assert sink.completions == ["finished"]
    assert transport.calls == []


@pytest.mark.asyncio
async def test_malformed_action_fails_turn(make_orchestrator, scripted_llm, registry, sink):
    llm = scripted_llm(['<thought>t</thought><action>send_to_agent(agent_name="X")</action>'])

    outcome = await make_orchestrator(llm).run("q", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.FAILED
    assert "Missing required parameters" in outcome.error
    assert sink.completions == ["finished"]


@pytest.mark.asyncio
async def test_unknown_agent_fails_without_dispatch(make_orchestrator, scripted_llm, registry, transport, sink):
    llm = scripted_llm(['<action>send_to_agent(agent_name="Z", skill_name="Y", message="hi")</action>'])

    outcome = await make_orchestrator(llm).run("q", registry, sink.on_chunk, sink.on_complete)

    assert outcome.status is RunStatus.FAILED
    assert transport.calls == []
    assert sink.text.startswith("#### Error: \n")
    assert sink.completions == ["finished"]


@pytest.mark.asyncio
async def test_stream_error_fails_run(make_orchestrator, failing_llm, registry, transport, sink):
    outcome = await make_orchestrator(failing_llm("upstream 500")).run(
        "q", registry, sink.on_chunk, sink.on_complete
    )

    assert outcome.status is RunStatus.FAILED
    assert "upstream 500" in outcome.error
    assert sink.text.startswith("#### Error: \n")
    assert sink.completions == ["finished"]


@pytest.mark.asyncio
async def test_remote_error_with_json_is_pretty_printed(
    make_orchestrator, scripted_llm, registry, transport_cls, sink
):
    class FailingTransport(transport_cls):
        def send_message(self, *args, **kwargs):
            raise RemoteCallFailed('Request failed {"code": 500, "reason": "down"}')

    llm = scripted_llm([ACTION_XY])

    outcome = await make_orchestrator(llm, transport_override=FailingTransport()).run(
        "q", registry, sink.on_chunk, sink.on_complete
    )

    assert outcome.status is RunStatus.FAILED
    assert "#### Error: \nRequest failed \n```json\n" in sink.text
    assert '"reason": "down"' in sink.text


@pytest.mark.asyncio
async def test_unexpected_failure_uses_fatal_prefix(make_orchestrator, scripted_llm, registry, transport_cls, sink):
    class ExplodingTransport(transport_cls):
        def send_message(self, *args, **kwargs):
            raise KeyError("result")

    llm = scripted_llm([ACTION_XY])

    outcome = await make_orchestrator(llm, transport_override=ExplodingTransport()).run(
        "q", registry, sink.on_chunk, sink.on_complete
    )

    assert outcome.status is RunStatus.FAILED
    assert sink.text.startswith("#### Thought: \nask X\n##### Error: \n")
    assert sink.completions == ["finished"]


@pytest.mark.asyncio
async def test_run_without_on_complete(make_orchestrator, scripted_llm, registry, sink):
    outcome = await make_orchestrator(scripted_llm([FINAL_42])).run("q", registry, sink.on_chunk)

    assert outcome.final_answer == "42"
    assert sink.completions == []


@pytest.mark.asyncio
async def test_failing_on_complete_does_not_break_run(make_orchestrator, scripted_llm, registry, sink):
    def explode(_value):
        raise RuntimeError("ui closed")

    outcome = await make_orchestrator(scripted_llm([FINAL_42])).run("q", registry, sink.on_chunk, explode)

    assert outcome.status is RunStatus.ANSWERED


def test_executor_config_from_env(monkeypatch):
    monkeypatch.setenv("REACT_HOST_MAX_ITERATIONS", "3")
    monkeypatch.setenv("REACT_HOST_COMPLETION_TIMEOUT", "12.5")
    monkeypatch.setenv("REACT_HOST_CHANNEL", "custom")

    config = ExecutorConfig.from_env()

    assert config.max_iterations == 3
    assert config.completion_timeout == 12.5
    assert config.channel == "custom"


class LateFailingLLM(LLMClient):
    """The first call outlives its timeout and then fails; later calls answer."""

    def __init__(self, answer: str) -> None:
        super().__init__("late")
        self.answer = answer
        self.release = threading.Event()
        self.stale_sent = threading.Event()
        self.calls = 0

    def stream_chat(self, messages, emit, **kwargs) -> str:
        self.calls += 1
        if self.calls == 1:
            self.release.wait(5)
            emit(StreamChunk(content="stale"))
            try:
                self.emit_failure(emit, "upstream gave up")
            finally:
                self.stale_sent.set()
        self.release.set()
        self.stale_sent.wait(5)
        self.emit_started(emit)
        emit(StreamChunk(content=self.answer))
        self.emit_completed(emit)
        return self.answer


@pytest.mark.asyncio
async def test_timed_out_completion_does_not_leak_into_next_run(make_orchestrator, registry, sink):
    llm = LateFailingLLM(FINAL_42)
    orchestrator = make_orchestrator(llm, completion_timeout=0.1)

    timed_out = await orchestrator.run("first", registry, sink.on_chunk, sink.on_complete)

    assert timed_out.status is RunStatus.FAILED
    assert "Streaming timeout" in timed_out.error
    assert sink.text.startswith("#### Error: \n")
    assert sink.completions == ["finished"]

    orchestrator.config.completion_timeout = 5
    second = type(sink)()
    answered = await orchestrator.run("second", registry, second.on_chunk, second.on_complete)

    assert llm.calls == 2
    assert answered.status is RunStatus.ANSWERED
    assert answered.final_answer == "42"
    assert second.completions == ["42"]
    assert "upstream gave up" not in second.text
    assert orchestrator.events.active_channels() == []
