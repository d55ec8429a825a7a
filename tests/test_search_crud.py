"""
Tests for tag and text search.
"""

import uuid

import pytest
from sqlalchemy.dialects import postgresql

from core.exceptions import ValidationError
from crud.poll_crud import poll_crud as PollCrud
from crud.search_crud import search_crud as SearchCrud
from crud.tag_crud import tag_crud as TagCrud
from schemas.poll_schema import CreatePollOptionSchema


@pytest.mark.unit
class TestSearchByTag:
    """Polls reachable through an active mapping to an active tag."""

    async def test_by_uuid(self, session, owner_id, poll_request) -> None:
        tagged = await PollCrud.create_poll(session, poll_request("tagged", ["A"], ["pets"]), owner_id)
        await PollCrud.create_poll(session, poll_request("plain", ["A"]), owner_id)

        found = await SearchCrud.search_by_tag(session, tag_uuid=tagged.tags[0].uuid)

        assert [poll.uuid for poll in found] == [tagged.uuid]

    async def test_by_name_spans_owners_unless_scoped(self, session, owner_id, other_user_id, poll_request) -> None:
        mine = await PollCrud.create_poll(session, poll_request("mine", ["A"], ["pets"]), owner_id)
        theirs = await PollCrud.create_poll(session, poll_request("theirs", ["A"], ["pets"]), other_user_id)

        everyone = await SearchCrud.search_by_tag(session, tag_names=["pets"])
        scoped = await SearchCrud.search_by_tag(session, tag_names=["pets"], owner_id=owner_id)

        assert [poll.uuid for poll in everyone] == [theirs.uuid, mine.uuid]
        assert [poll.uuid for poll in scoped] == [mine.uuid]

    async def test_any_of_several_names_matches_once(self, session, owner_id, poll_request) -> None:
        both = await PollCrud.create_poll(session, poll_request("both", ["A"], ["a", "b"]), owner_id)

        found = await SearchCrud.search_by_tag(session, tag_names=["a", "b"], owner_id=owner_id)

        assert [poll.uuid for poll in found] == [both.uuid]

    async def test_untagged_poll_drops_out(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Q", ["A"], ["temp"]), owner_id)
        await TagCrud.untag_poll(session, created.uuid, owner_id, name="temp")

        assert await SearchCrud.search_by_tag(session, tag_names=["temp"]) == []

    async def test_needs_an_identifier(self, session) -> None:
        with pytest.raises(ValidationError):
            await SearchCrud.search_by_tag(session)

    async def test_unknown_tag_finds_nothing(self, session) -> None:
        assert await SearchCrud.search_by_tag(session, tag_uuid=uuid.uuid4()) == []


@pytest.mark.unit
class TestSearchByText:
    """Case-insensitive substring search over questions and option texts."""

    async def test_matches_question_or_option_case_insensitively(self, session, owner_id, poll_request) -> None:
        by_question = await PollCrud.create_poll(session, poll_request("Favourite PIZZA topping?", ["Ham"]), owner_id)
        by_option = await PollCrud.create_poll(session, poll_request("Dinner?", ["Pizza", "Pasta"]), owner_id)
        await PollCrud.create_poll(session, poll_request("Dessert?", ["Cake"]), owner_id)

        found = await SearchCrud.search_by_text(session, "pizza")

        assert [poll.uuid for poll in found] == [by_option.uuid, by_question.uuid]

    async def test_poll_matching_many_options_appears_once(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Snack?", ["apple pie", "apple tart", "apple"]), owner_id)

        found = await SearchCrud.search_by_text(session, "apple")

        assert [poll.uuid for poll in found] == [created.uuid]
        assert len(found[0].options) == 3

    async def test_deleted_options_do_not_match(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Q", ["needle", "hay"]), owner_id)
        await PollCrud.delete_option(session, created.uuid, created.options[0].uuid, owner_id)

        assert await SearchCrud.search_by_text(session, "needle") == []

    async def test_added_option_matches(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Q", ["hay"]), owner_id)
        await PollCrud.add_option(session, created.uuid, CreatePollOptionSchema(text="Needle"), owner_id)

        assert [poll.uuid for poll in await SearchCrud.search_by_text(session, "needle")] == [created.uuid]

    async def test_like_wildcards_are_literal(self, session, owner_id, poll_request) -> None:
        literal = await PollCrud.create_poll(session, poll_request("Is 100% enough?", ["Yes"]), owner_id)
        await PollCrud.create_poll(session, poll_request("Is 1000 enough?", ["Yes"]), owner_id)

        found = await SearchCrud.search_by_text(session, "100%")

        assert [poll.uuid for poll in found] == [literal.uuid]

    async def test_pagination_applies_to_distinct_polls(self, session, owner_id, poll_request) -> None:
        for idx in range(4):
            await PollCrud.create_poll(session, poll_request(f"match {idx}", ["match", "match again"]), owner_id)

        page = await SearchCrud.search_by_text(session, "match", limit=2, offset=1)

        assert [poll.question for poll in page] == ["match 2", "match 1"]

    async def test_deleted_polls_are_hidden(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("gone", ["A"]), owner_id)
        await PollCrud.delete_poll(session, created.uuid, owner_id)

        assert await SearchCrud.search_by_text(session, "gone") == []

    async def test_blank_query_is_rejected(self, session) -> None:
        with pytest.raises(ValidationError):
            await SearchCrud.search_by_text(session, "   ")

    async def test_non_ascii_text_matches(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Crème brûlée or flan?", ["Flan"]), owner_id)

        found = await SearchCrud.search_by_text(session, "CRème BRûlée")

        assert [poll.uuid for poll in found] == [created.uuid]

    def test_text_match_uses_ilike_on_postgresql(self) -> None:
        """PostgreSQL folds case for any script only through ILIKE, not through lower()."""
        sql = str(SearchCrud.text_match_stmt("Ünïcode").compile(dialect=postgresql.dialect()))

        assert sql.count("ILIKE") == 2
        assert "lower(" not in sql

    def test_like_pattern_escapes_wildcards(self) -> None:
        assert SearchCrud.like_pattern("50%_a/b") == "%50/%/_a//b%"
