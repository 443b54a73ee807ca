# chitchat/tests/unit/test_message_interactor.py
from datetime import datetime, timedelta, timezone

import pytest

from chitchat.domain.enums import MessageType, ParticipantRole
from chitchat.domain.events import MessageDeleted, MessageEdited, MessageSent
from chitchat.domain.exceptions import (
    EditWindowExpiredError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from chitchat.infrastructure.attachment_store import LocalAttachmentStore
from chitchat.interactors.message_interactor import MessageInteractor, as_utc
from chitchat.interactors.room_interactor import RoomInteractor


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def attachment_store(app_config):
    return LocalAttachmentStore(app_config.UPLOAD_DIR)


@pytest.fixture
def message_interactor(
    uow,
    message_gateway,
    user_gateway,
    access_guard,
    broadcaster,
    attachment_store,
    app_config,
    clock,
):
    return MessageInteractor(
        uow,
        message_gateway,
        user_gateway,
        access_guard,
        broadcaster,
        attachment_store,
        app_config,
        clock=clock,
    )


@pytest.fixture
async def room(room_gateway, uow, test_user, test_user2):
    """test_user is ADMIN, test_user2 is MEMBER."""
    room = await room_gateway.create_room("General", True, test_user.id)
    await room_gateway.add_participant(room.id, test_user.id, ParticipantRole.ADMIN)
    await room_gateway.add_participant(room.id, test_user2.id, ParticipantRole.MEMBER)
    await uow.commit()
    return room


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)

    assert as_utc(naive).tzinfo is timezone.utc
    assert as_utc(naive.replace(tzinfo=timezone.utc)) == as_utc(naive)


class TestSend:
    async def test_send(self, message_interactor, room, test_user2, clock, published_events):
        message = await message_interactor.send(test_user2.id, room.id, "Hello")

        assert message.content == "Hello"
        assert message.message_type == MessageType.TEXT
        assert message.sender.username == test_user2.username
        assert as_utc(message.sent_at) == clock.now
        assert message.edited_at is None
        events = published_events()
        assert len(events) == 1
        assert isinstance(events[0], MessageSent)
        assert events[0].message.id == message.id

    async def test_non_participant_cannot_send(
        self, message_interactor, room, test_user3, published_events
    ):
        with pytest.raises(UnauthorizedError):
            await message_interactor.send(test_user3.id, room.id, "Hello")
        assert published_events() == []

    @pytest.mark.parametrize("content", ["", "   ", "x" * 1001])
    async def test_invalid_content(self, message_interactor, room, test_user, content):
        with pytest.raises(InvalidArgumentError):
            await message_interactor.send(test_user.id, room.id, content)

    async def test_max_length_content(self, message_interactor, room, test_user):
        message = await message_interactor.send(test_user.id, room.id, "x" * 1000)

        assert len(message.content) == 1000


class TestEdit:
    async def test_edit_within_window(
        self, message_interactor, room, test_user2, clock, published_events
    ):
        message = await message_interactor.send(test_user2.id, room.id, "Helo")
        clock.advance(hours=23, minutes=59)

        edited = await message_interactor.edit(test_user2.id, message.id, "Hello")

        assert edited.content == "Hello"
        assert as_utc(edited.edited_at) == clock.now
        assert isinstance(published_events()[-1], MessageEdited)

    async def test_edit_after_window(self, message_interactor, room, test_user2, clock):
        message = await message_interactor.send(test_user2.id, room.id, "Helo")
        clock.advance(hours=24)

        with pytest.raises(EditWindowExpiredError):
            await message_interactor.edit(test_user2.id, message.id, "Hello")

    async def test_admin_cannot_edit_others(
        self, message_interactor, room, test_user, test_user2
    ):
        message = await message_interactor.send(test_user2.id, room.id, "Mine")

        with pytest.raises(UnauthorizedError):
            await message_interactor.edit(test_user.id, message.id, "Yours")

    async def test_edit_unknown_message(self, message_interactor, test_user):
        with pytest.raises(NotFoundError):
            await message_interactor.edit(test_user.id, 9999, "Hello")

    async def test_edit_deleted_message(self, message_interactor, room, test_user2):
        message = await message_interactor.send(test_user2.id, room.id, "Bye")
        await message_interactor.delete(test_user2.id, message.id)

        with pytest.raises(NotFoundError):
            await message_interactor.edit(test_user2.id, message.id, "Hi")

    async def test_edit_validates_content(self, message_interactor, room, test_user2):
        message = await message_interactor.send(test_user2.id, room.id, "Hi")

        with pytest.raises(InvalidArgumentError):
            await message_interactor.edit(test_user2.id, message.id, "")


class TestDelete:
    async def test_sender_deletes_once(
        self, message_interactor, room, test_user2, published_events
    ):
        message = await message_interactor.send(test_user2.id, room.id, "Oops")

        await message_interactor.delete(test_user2.id, message.id)
        await message_interactor.delete(test_user2.id, message.id)

        deleted = [e for e in published_events() if isinstance(e, MessageDeleted)]
        assert len(deleted) == 1
        assert await message_interactor.page(room.id, test_user2.id, 0, 10) == []

    async def test_admin_deletes_others(self, message_interactor, room, test_user, test_user2):
        message = await message_interactor.send(test_user2.id, room.id, "Spam")

        await message_interactor.delete(test_user.id, message.id)

        assert await message_interactor.page(room.id, test_user.id, 0, 10) == []

    async def test_member_cannot_delete_others(
        self, message_interactor, room, test_user, test_user2
    ):
        message = await message_interactor.send(test_user.id, room.id, "Rules")

        with pytest.raises(UnauthorizedError):
            await message_interactor.delete(test_user2.id, message.id)

    async def test_delete_unknown(self, message_interactor, test_user):
        with pytest.raises(NotFoundError):
            await message_interactor.delete(test_user.id, 9999)


class TestPagingAndSearch:
    async def test_page_is_newest_first(self, message_interactor, room, test_user, clock):
        for number in range(5):
            await message_interactor.send(test_user.id, room.id, f"message {number}")
            clock.advance(minutes=1)

        first = await message_interactor.page(room.id, test_user.id, 0, 2)
        last = await message_interactor.page(room.id, test_user.id, 2, 2)

        assert [m.content for m in first] == ["message 4", "message 3"]
        assert [m.content for m in last] == ["message 0"]

    async def test_same_timestamp_falls_back_to_id(self, message_interactor, room, test_user):
        for number in range(3):
            await message_interactor.send(test_user.id, room.id, f"tick {number}")

        page = await message_interactor.page(room.id, test_user.id, 0, 10)

        assert [m.content for m in page] == ["tick 2", "tick 1", "tick 0"]

    @pytest.mark.parametrize("page, size", [(-1, 10), (0, 0), (0, 101)])
    async def test_invalid_paging(self, message_interactor, room, test_user, page, size):
        with pytest.raises(InvalidArgumentError):
            await message_interactor.page(room.id, test_user.id, page, size)

    async def test_page_requires_access(self, message_interactor, room, test_user3):
        with pytest.raises(UnauthorizedError):
            await message_interactor.page(room.id, test_user3.id, 0, 10)

    async def test_search_in_room_is_case_insensitive(
        self, message_interactor, room, test_user, test_user2
    ):
        await message_interactor.send(test_user.id, room.id, "Lunch at NOON?")
        await message_interactor.send(test_user2.id, room.id, "sure")

        found = await message_interactor.search(room.id, test_user2.id, "  noon ", 0, 10)

        assert [m.content for m in found] == ["Lunch at NOON?"]

    async def test_search_treats_wildcards_literally(self, message_interactor, room, test_user):
        await message_interactor.send(test_user.id, room.id, "100% sure")
        await message_interactor.send(test_user.id, room.id, "1000 times")

        found = await message_interactor.search(room.id, test_user.id, "0%", 0, 10)

        assert [m.content for m in found] == ["100% sure"]

    async def test_empty_query(self, message_interactor, room, test_user):
        with pytest.raises(InvalidArgumentError):
            await message_interactor.search(room.id, test_user.id, "   ", 0, 10)

    async def test_search_across_rooms_only_covers_active_memberships(
        self, message_interactor, room_gateway, uow, room, test_user, test_user2
    ):
        other = await room_gateway.create_room("Secret", True, test_user.id)
        await room_gateway.add_participant(other.id, test_user.id, ParticipantRole.ADMIN)
        await uow.commit()
        await message_interactor.send(test_user.id, room.id, "hello everyone")
        await message_interactor.send(test_user.id, other.id, "hello secret")

        mine = await message_interactor.search(None, test_user.id, "hello", 0, 10)
        theirs = await message_interactor.search(None, test_user2.id, "hello", 0, 10)

        assert {(m.content, m.room_name) for m in mine} == {
            ("hello everyone", "General"),
            ("hello secret", "Secret"),
        }
        assert [m.content for m in theirs] == ["hello everyone"]


class TestMembershipChanges:
    @pytest.fixture
    def room_interactor(self, uow, room_gateway, user_gateway, access_guard, broadcaster):
        return RoomInteractor(uow, room_gateway, user_gateway, access_guard, broadcaster)

    async def test_removed_member_loses_history_but_messages_stay(
        self, message_interactor, room_interactor, room, test_user, test_user2, test_user3
    ):
        await room_interactor.add_participant(test_user.id, room.id, test_user3.id)
        await message_interactor.send(test_user3.id, room.id, "hi from carol")
        await message_interactor.send(test_user2.id, room.id, "hi carol")

        await room_interactor.remove_participant(test_user.id, room.id, test_user3.id)

        with pytest.raises(UnauthorizedError):
            await message_interactor.page(room.id, test_user3.id, 0, 10)
        with pytest.raises(UnauthorizedError):
            await message_interactor.send(test_user3.id, room.id, "still here?")
        for member in (test_user, test_user2):
            page = await message_interactor.page(room.id, member.id, 0, 10)
            assert [m.content for m in page] == ["hi carol", "hi from carol"]

    async def test_direct_room_is_usable_again_after_leaving(
        self, message_interactor, room_interactor, test_user, test_user2
    ):
        direct = await room_interactor.find_or_create_direct_room(test_user.id, test_user2.id)
        await message_interactor.send(test_user.id, direct.id, "before")
        await room_interactor.leave_room(test_user2.id, direct.id)

        reopened = await room_interactor.find_or_create_direct_room(test_user2.id, test_user.id)
        await message_interactor.send(test_user2.id, reopened.id, "back again")

        assert reopened.id == direct.id
        page = await message_interactor.page(reopened.id, test_user2.id, 0, 10)
        assert [m.content for m in page] == ["back again", "before"]


class TestAttachments:
    async def test_attach_and_load(self, message_interactor, room, test_user, test_user2):
        message = await message_interactor.send(test_user.id, room.id, "see file")

        attachment = await message_interactor.attach(
            test_user.id, message.id, "report.pdf", "application/pdf", b"%PDF-1.4"
        )
        listed = await message_interactor.attachments_of(test_user2.id, message.id)
        loaded, data = await message_interactor.load_attachment(test_user2.id, attachment.id)

        assert attachment.file_size == 8
        assert [a.id for a in listed] == [attachment.id]
        assert loaded.file_name == "report.pdf"
        assert data == b"%PDF-1.4"

    async def test_only_sender_attaches(self, message_interactor, room, test_user, test_user2):
        message = await message_interactor.send(test_user.id, room.id, "see file")

        with pytest.raises(UnauthorizedError):
            await message_interactor.attach(
                test_user2.id, message.id, "x.txt", "text/plain", b"x"
            )

    async def test_attachment_size_limit(self, message_interactor, room, test_user, app_config):
        message = await message_interactor.send(test_user.id, room.id, "big")

        with pytest.raises(InvalidArgumentError):
            await message_interactor.attach(
                test_user.id,
                message.id,
                "big.bin",
                None,
                b"x" * (app_config.MAX_ATTACHMENT_BYTES + 1),
            )

    async def test_outsider_cannot_load(self, message_interactor, room, test_user, test_user3):
        message = await message_interactor.send(test_user.id, room.id, "see file")
        attachment = await message_interactor.attach(
            test_user.id, message.id, "a.txt", "text/plain", b"a"
        )

        with pytest.raises(UnauthorizedError):
            await message_interactor.load_attachment(test_user3.id, attachment.id)
