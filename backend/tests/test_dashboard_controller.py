"""
Tests for DashboardController
"""
import asyncio

import pytest

from focuslane.services.assistant_gateway import AssistantGateway
from focuslane.services.dashboard_controller import (ActionUnavailableError,
                                                     DashboardController,
                                                     DashboardPhase,
                                                     NoticeLevel)
from focuslane.services.entry_store import EntryDraft, EntryStoreError


class GatedAssistant(AssistantGateway):
    """Each call waits on its own event before replying"""

    def __init__(self):
        self.gates = []

    async def ask(self, prompt: str) -> str:
        gate = asyncio.Event()
        index = len(self.gates)
        self.gates.append(gate)
        await gate.wait()
        return f"reply {index}"


class BrokenStore:
    """Store whose every call fails"""

    def load_latest(self, user_id):
        raise EntryStoreError("down")

    def save(self, user_id, draft):
        raise EntryStoreError("down")


async def wait_for_calls(assistant: GatedAssistant, count: int):
    while len(assistant.gates) < count:
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_starts_unauthenticated(controller: DashboardController):
    await controller.start()

    snapshot = controller.snapshot()
    assert snapshot["phase"] == "unauthenticated"
    assert snapshot["user"] is None
    assert snapshot["assistant_reply"] == ""


@pytest.mark.asyncio
async def test_actions_need_a_user(controller: DashboardController):
    await controller.start()

    with pytest.raises(ActionUnavailableError):
        controller.select_lane("Life")
    with pytest.raises(ActionUnavailableError):
        await controller.save()
    with pytest.raises(ActionUnavailableError):
        await controller.ask_assistant()


@pytest.mark.asyncio
async def test_sign_in_loads_latest_entry(controller: DashboardController, entry_store):
    entry_store.save("user-a", EntryDraft(lane="Creative", next_action="sketch", last_win="slept", brain_dump="ideas"))
    await controller.start()

    await controller.complete_sign_in("token-a")

    state = controller.state
    assert state.phase == DashboardPhase.READY
    assert state.user.id == "user-a"
    assert state.selected_lane == "Creative"
    assert state.next_action == "sketch"
    assert state.last_win == "slept"
    assert state.brain_dump == "ideas"


@pytest.mark.asyncio
async def test_sign_in_without_entries_leaves_fields_empty(controller: DashboardController):
    await controller.start()
    await controller.complete_sign_in("token-a")

    snapshot = controller.snapshot()
    assert snapshot["phase"] == "ready"
    assert snapshot["selected_lane"] == ""
    assert snapshot["next_action"] == ""
    assert snapshot["lane_glyph"] is None


@pytest.mark.asyncio
async def test_end_to_end_save_and_reload(identity_client, entry_store, fake_assistant):
    from focuslane.services.auth_session import AuthSession

    async with DashboardController(AuthSession(identity=identity_client), entry_store, fake_assistant) as first:
        await first.complete_sign_in("token-a")
        assert first.state.user.email == "a@b.com"
        first.select_lane("Recovery")
        first.update_fields(next_action="drink water")
        await first.save()
        assert first.state.notice.message == "Saved."

    async with DashboardController(AuthSession(identity=identity_client), entry_store, fake_assistant) as second:
        await second.complete_sign_in("token-a")
        snapshot = second.snapshot()
        assert snapshot["selected_lane"] == "Recovery"
        assert snapshot["lane_glyph"] == "🛑"
        assert snapshot["next_action"] == "drink water"
        assert snapshot["last_win"] == ""
        assert snapshot["brain_dump"] == ""


@pytest.mark.asyncio
async def test_select_lane_keeps_other_fields(controller: DashboardController, entry_store):
    await controller.start()
    await controller.complete_sign_in("token-a")
    controller.update_fields(next_action="call bank", last_win="paid rent", brain_dump="so much")

    controller.select_lane("Financial")
    controller.select_lane("my own lane")

    state = controller.state
    assert state.selected_lane == "my own lane"
    assert (state.next_action, state.last_win, state.brain_dump) == ("call bank", "paid rent", "so much")
    assert entry_store.load_latest("user-a") is None


@pytest.mark.asyncio
async def test_update_fields_is_partial(controller: DashboardController):
    await controller.start()
    await controller.complete_sign_in("token-a")

    controller.update_fields(next_action="one")
    controller.update_fields(last_win="two")

    assert controller.state.next_action == "one"
    assert controller.state.last_win == "two"


@pytest.mark.asyncio
async def test_compose_prompt_embeds_fields(controller: DashboardController):
    await controller.start()
    await controller.complete_sign_in("token-a")
    controller.select_lane("Recovery")
    controller.update_fields(next_action="drink water", last_win="got up", brain_dump="noise")

    prompt = controller.compose_prompt()

    assert prompt == (
        "You're FocusBot, a calm assistant for someone with executive dysfunction. "
        "The user is currently in the lane 'Recovery'. "
        "Their next action is: 'drink water'. "
        "Their last win was: 'got up'. "
        "Their brain junk is: 'noise'. "
        "Offer one gentle suggestion or break the task into a smaller piece."
    )


@pytest.mark.asyncio
async def test_ask_assistant_displays_reply(controller: DashboardController, fake_assistant):
    await controller.start()
    await controller.complete_sign_in("token-a")
    controller.select_lane("Life")

    reply = await controller.ask_assistant()

    assert reply == "Take one sip of water first."
    assert controller.state.assistant_reply == reply
    assert fake_assistant.prompts == [controller.compose_prompt()]
    assert controller.state.phase == DashboardPhase.READY


@pytest.mark.asyncio
async def test_unreachable_assistant_shows_fallback(auth_session, entry_store, unreachable_assistant):
    controller = DashboardController(auth_session, entry_store, unreachable_assistant)
    await controller.start()
    await controller.complete_sign_in("token-a")

    await controller.ask_assistant()

    assert controller.state.assistant_reply == "Hmm, something went wrong."
    assert controller.state.notice.level == NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_save_failure_keeps_fields(auth_session, fake_assistant):
    controller = DashboardController(auth_session, BrokenStore(), fake_assistant)
    await controller.start()
    await controller.complete_sign_in("token-a")
    assert controller.state.notice.message == "Couldn't load your last entry."

    controller.update_fields(next_action="still here")
    result = await controller.save()

    assert result is None
    assert controller.state.next_action == "still here"
    assert controller.state.notice.level == NoticeLevel.ERROR

    controller.dismiss_notice()
    assert controller.snapshot()["notice"] is None


@pytest.mark.asyncio
async def test_awaiting_reply_phase_and_latest_reply_wins(auth_session, entry_store):
    assistant = GatedAssistant()
    controller = DashboardController(auth_session, entry_store, assistant)
    await controller.start()
    await controller.complete_sign_in("token-a")

    first = asyncio.create_task(controller.ask_assistant())
    await wait_for_calls(assistant, 1)
    assert controller.state.phase == DashboardPhase.AWAITING_REPLY

    second = asyncio.create_task(controller.ask_assistant())
    await wait_for_calls(assistant, 2)

    assistant.gates[1].set()
    assert await second == "reply 1"
    assert controller.state.assistant_reply == "reply 1"
    assert controller.state.phase == DashboardPhase.AWAITING_REPLY

    assistant.gates[0].set()
    assert await first == "reply 0"
    assert controller.state.assistant_reply == "reply 1"
    assert controller.state.phase == DashboardPhase.READY


@pytest.mark.asyncio
async def test_reply_after_sign_out_is_dropped(auth_session, entry_store):
    assistant = GatedAssistant()
    controller = DashboardController(auth_session, entry_store, assistant)
    await controller.start()
    await controller.complete_sign_in("token-a")

    pending = asyncio.create_task(controller.ask_assistant())
    await wait_for_calls(assistant, 1)
    await controller.sign_out()
    assistant.gates[0].set()
    await pending

    snapshot = controller.snapshot()
    assert snapshot["phase"] == "unauthenticated"
    assert snapshot["assistant_reply"] == ""


@pytest.mark.asyncio
async def test_sign_out_resets_state(controller: DashboardController, identity_provider):
    await controller.start()
    await controller.complete_sign_in("token-a")
    controller.update_fields(next_action="something")

    await controller.sign_out()

    assert controller.state.phase == DashboardPhase.UNAUTHENTICATED
    assert controller.state.next_action == ""
    assert identity_provider.revoked == ["token-a"]


@pytest.mark.asyncio
async def test_sign_in_request_reports_through_notice(controller: DashboardController, identity_provider):
    await controller.start()

    assert await controller.sign_in("a@b.com") is True
    assert controller.state.notice.level == NoticeLevel.INFO

    identity_provider.fail_otp = True
    assert await controller.sign_in("a@b.com") is False
    assert controller.state.notice.level == NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_close_unsubscribes(controller: DashboardController, auth_session):
    await controller.start()
    await controller.close()

    await auth_session.adopt_session("token-a")

    assert controller.state.user is None
