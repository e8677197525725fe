from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from ragchat.client import ChatTransportError
from ragchat.controller import FAILURE_NOTIFICATION, ConversationController, ConversationState
from ragchat.types import ChatResponse, Message, Notification


class FakeTransport:
    def __init__(self, responses: List[object], gate: Optional[asyncio.Event] = None) -> None:
        self.responses = list(responses)
        self.gate = gate
        self.calls: List[str] = []

    async def send(self, message: str) -> ChatResponse:
        self.calls.append(message)
        if self.gate is not None:
            await self.gate.wait()
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result  # type: ignore[return-value]


class Recorder:
    def __init__(self) -> None:
        self.notifications: List[Notification] = []
        self.cues: List[str] = []
        self.delays: List[float] = []
        self.states: List[ConversationState] = []

    async def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_controller(transport: FakeTransport, recorder: Recorder, **kwargs) -> ConversationController:
    controller = ConversationController(
        transport=transport,
        notify=recorder.notifications.append,
        play_cue=recorder.cues.append,
        sleep=recorder.sleep,
        **kwargs,
    )
    controller.subscribe(recorder.states.append)
    return controller


def _collapse(values: List[bool]) -> List[bool]:
    collapsed: List[bool] = []
    for value in values:
        if not collapsed or collapsed[-1] != value:
            collapsed.append(value)
    return collapsed


def answer(text: str, sources: list) -> ChatResponse:
    return ChatResponse(answer=text, sources=sources)


def test_successful_turn_transitions(source_factory) -> None:
    recorder = Recorder()
    sources = [source_factory(5)]
    transport = FakeTransport([answer("Vitamins A, D, E and K. [1]", sources)])
    controller = make_controller(transport, recorder)

    assert controller.state.is_empty
    accepted = asyncio.run(controller.submit("What vitamins are fat soluble?"))

    assert accepted is True
    assert transport.calls == ["What vitamins are fat soluble?"]
    assert controller.state.messages == (
        Message(role="user", content="What vitamins are fat soluble?"),
        Message(role="assistant", content="Vitamins A, D, E and K. [1]"),
    )
    assert list(controller.state.current_sources) == sources
    assert _collapse([False] + [state.pending for state in recorder.states]) == [False, True, False]
    assert _collapse([False] + [state.typing_indicator for state in recorder.states]) == [False, True, False]
    assert not controller.state.is_empty
    assert controller.state.phase == "idle"


def test_typing_indicator_cleared_before_assistant_message(source_factory) -> None:
    recorder = Recorder()
    controller = make_controller(FakeTransport([answer("ok", [source_factory(1)])]), recorder)
    asyncio.run(controller.submit("hi"))

    for state in recorder.states:
        if len(state.messages) == 2:
            assert state.typing_indicator is False
            assert state.pending is True or state is recorder.states[-1]
        if state.typing_indicator:
            assert len(state.messages) == 1
            assert state.pending


def test_display_delay_happens_before_append() -> None:
    recorder = Recorder()
    controller = make_controller(FakeTransport([answer("ok", [])]), recorder, display_delay=0.5)
    seen: List[Tuple[int, bool]] = []

    async def sleep(seconds: float) -> None:
        recorder.delays.append(seconds)
        seen.append((len(controller.state.messages), controller.state.typing_indicator))

    controller._sleep = sleep
    asyncio.run(controller.submit("hi"))

    assert recorder.delays == [0.5]
    assert seen == [(1, False)]


def test_submit_trims_and_clears_draft() -> None:
    recorder = Recorder()
    transport = FakeTransport([answer("ok", [])])
    controller = make_controller(transport, recorder)

    controller.update_draft("  What about iron?  ")
    asyncio.run(controller.submit())

    assert transport.calls == ["What about iron?"]
    assert controller.state.messages[0].content == "What about iron?"
    assert controller.state.draft == ""


def test_blank_submission_is_a_no_op() -> None:
    recorder = Recorder()
    transport = FakeTransport([])
    controller = make_controller(transport, recorder)
    before = controller.state

    assert asyncio.run(controller.submit("   \n\t ")) is False
    assert asyncio.run(controller.submit("")) is False
    assert transport.calls == []
    assert recorder.states == []
    assert controller.state is before


def test_second_submit_while_pending_is_ignored() -> None:
    async def scenario() -> Tuple[ConversationController, FakeTransport, bool, bool]:
        gate = asyncio.Event()
        transport = FakeTransport([answer("first", [])], gate=gate)
        controller = make_controller(transport, Recorder())
        first = asyncio.create_task(controller.submit("first question"))
        await asyncio.sleep(0)
        assert controller.state.pending
        second = await controller.submit("second question")
        gate.set()
        return controller, transport, await first, second

    controller, transport, first_result, second_result = asyncio.run(scenario())

    assert first_result is True
    assert second_result is False
    assert transport.calls == ["first question"]
    assert [message.role for message in controller.state.messages] == ["user", "assistant"]
    assert controller.state.messages[0].content == "first question"


def test_draft_can_change_while_pending() -> None:
    async def scenario() -> ConversationController:
        gate = asyncio.Event()
        controller = make_controller(FakeTransport([answer("a", [])], gate=gate), Recorder())
        task = asyncio.create_task(controller.submit("q"))
        await asyncio.sleep(0)
        controller.update_draft("next question")
        assert await controller.submit() is False
        gate.set()
        await task
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.draft == "next question"
    assert len(controller.state.messages) == 2


def test_transport_failure_keeps_history_and_notifies(source_factory) -> None:
    recorder = Recorder()
    earlier_sources = [source_factory(1)]
    transport = FakeTransport([answer("first", earlier_sources), ChatTransportError("HTTP error! status: 500", 500)])
    controller = make_controller(transport, recorder)

    asyncio.run(controller.submit("one"))
    assert asyncio.run(controller.submit("two")) is False

    state = controller.state
    assert [message.role for message in state.messages] == ["user", "assistant", "user"]
    assert state.messages[-1].content == "two"
    assert state.pending is False
    assert state.typing_indicator is False
    assert list(state.current_sources) == earlier_sources
    assert recorder.notifications == [FAILURE_NOTIFICATION]
    assert recorder.cues == ["send", "receive", "send"]


def test_new_answer_replaces_sources(source_factory) -> None:
    first = [source_factory(1), source_factory(2)]
    second = [source_factory(3)]
    controller = make_controller(FakeTransport([answer("a [2]", first), answer("b [1]", second)]), Recorder())

    asyncio.run(controller.submit("one"))
    asyncio.run(controller.submit("two"))

    assert list(controller.state.current_sources) == second


def test_missing_sources_become_empty(source_factory) -> None:
    controller = make_controller(
        FakeTransport([answer("a", [source_factory(1)]), {"answer": "b"}]),
        Recorder(),
    )
    asyncio.run(controller.submit("one"))
    asyncio.run(controller.submit("two"))

    assert controller.state.current_sources == ()


def test_assistant_messages_follow_submission_order() -> None:
    controller = make_controller(FakeTransport([answer("a1", []), answer("a2", []), answer("a3", [])]), Recorder())
    for question in ("q1", "q2", "q3"):
        asyncio.run(controller.submit(question))

    assert [message.content for message in controller.state.messages] == ["q1", "a1", "q2", "a2", "q3", "a3"]


def test_toggle_sound_silences_cues() -> None:
    recorder = Recorder()
    controller = make_controller(FakeTransport([answer("a", [])]), recorder)

    assert controller.toggle_sound() is False
    asyncio.run(controller.submit("q"))

    assert recorder.cues == []
    assert controller.toggle_sound() is True


def test_cue_failures_are_swallowed() -> None:
    def broken_player(kind: str) -> None:
        raise OSError("no audio device")

    controller = ConversationController(
        transport=FakeTransport([answer("a", [])]),
        play_cue=broken_player,
        display_delay=0,
    )
    assert asyncio.run(controller.submit("q")) is True
    assert len(controller.state.messages) == 2
    assert controller.state.pending is False


def test_late_response_without_pending_request_is_ignored() -> None:
    controller = make_controller(FakeTransport([]), Recorder())
    asyncio.run(controller.response_received(answer("stray", [])))
    assert controller.state.messages == ()


def test_unsubscribe_stops_notifications() -> None:
    controller = ConversationController(transport=FakeTransport([answer("a", [])]), display_delay=0)
    seen: List[ConversationState] = []
    unsubscribe = controller.subscribe(seen.append)
    unsubscribe()
    asyncio.run(controller.submit("q"))
    assert seen == []
