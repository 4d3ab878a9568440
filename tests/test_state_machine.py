"""Tests for the token conversation state machine."""

import pytest

from tokentalk.chat.diagnostics import DiagnosticLevel, RecordingDiagnosticSink
from tokentalk.chat.state_machine import (
    ASK_CREATE_ID,
    ASK_DELETE_ID,
    ASK_GET_ID,
    EMPTY_VALUE,
    GENERIC_ERROR,
    INVALID_NUMBER,
    LOST_ID,
    RETRY_NUMBER,
    UPDATE_UNSUPPORTED,
    TokenConversationEngine,
    Turn,
)
from tokentalk.data.pending import PendingStore
from tokentalk.data.tokens import InMemoryTokenStore, Token


class TestTurn:
    """Test the Turn value threaded through handlers."""

    def test_context_defaults_to_prior(self):
        """A turn nobody touches keeps its prior context."""
        turn = Turn(text="x", prior_context="drupai_token.create_response")
        assert turn.context == "drupai_token.create_response"
        assert turn.closed is False

    def test_reply_without_context_keeps_context(self):
        """Replying without a new context leaves the old one in place."""
        turn = Turn(text="x", prior_context="drupai_token.create_response")
        turn.reply("again")
        assert turn.response == "again"
        assert turn.context == "drupai_token.create_response"


class TestRelevance:
    """Test which turns the engine handles at all."""

    def test_fresh_turn_without_keyword_is_ignored(self, engine, diagnostics):
        """Text that never mentions tokens is left alone."""
        result = engine.process_turn("what's the weather like")
        assert result.handled is False
        assert result.response is None
        assert result.context is None
        assert diagnostics.entries == []

    def test_foreign_context_is_ignored(self, engine):
        """A conversation owned by someone else is not resumed."""
        result = engine.process_turn("create token", prior_context="weather.ask_city")
        assert result.handled is False
        assert result.response is None
        assert result.context == "weather.ask_city"
        assert result.closed is False

    def test_own_context_is_handled_without_keyword(self, engine):
        """Answers to our own questions need not mention tokens."""
        engine.process_turn("create token")
        result = engine.process_turn("42", prior_context="drupai_token.create_response")
        assert result.handled is True

    def test_keyword_is_case_insensitive(self, engine):
        """'TOKEN' counts as mentioning tokens."""
        result = engine.process_turn("LIST TOKENS")
        assert result.handled is True


class TestIntentRouting:
    """Test routing of fresh turns."""

    def test_no_action_is_a_noop_turn(self, engine, diagnostics):
        """A turn mentioning tokens with no action gets a notice and nothing else."""
        result = engine.process_turn("token")
        assert result.handled is True
        assert result.response is None
        assert result.context is None
        assert result.closed is False
        assert diagnostics.messages(DiagnosticLevel.NOTICE) == [
            'String "token" found but no action specified'
        ]

    def test_create_beats_delete(self, engine):
        """'new' is checked before 'delete'."""
        result = engine.process_turn("new token please delete")
        assert result.response == ASK_CREATE_ID
        assert result.context == "drupai_token.create_response"

    def test_update_is_rejected(self, engine):
        """Update closes straight away with advice."""
        result = engine.process_turn("edit token")
        assert result.response == UPDATE_UNSUPPORTED
        assert result.closed is True

    def test_substitution_happens_before_routing(self, diagnostics):
        """'delete token 5' reaches the router with token 5's value swapped in."""
        store = InMemoryTokenStore([Token(5, "Dublin")])
        engine = TokenConversationEngine(store=store, diagnostics=diagnostics)

        result = engine.process_turn("delete token 5 please")

        assert result.rewritten_text == "delete Dublin please"
        # The number went with the substitution, so the id is asked for
        assert result.response == ASK_DELETE_ID
        assert 5 in store


class TestCreateFlow:
    """Test the create flow."""

    def test_end_to_end(self, engine, store, pending):
        """Three turns: ask id, ask value, create."""
        first = engine.process_turn("create token")
        assert first.response == ASK_CREATE_ID
        assert first.context == "drupai_token.create_response"
        assert first.closed is False

        second = engine.process_turn("42", prior_context=first.context)
        assert second.response == "What value would you like to give token 42?"
        assert second.context == "drupai_token.create_response.get_value"
        assert second.closed is False

        third = engine.process_turn("hello", prior_context=second.context)
        assert third.response == "New token ID 42 created with value: hello"
        assert third.context == "drupai_token.create_response.get_value.done"
        assert third.closed is True

        assert store.get(42).value == "hello"
        assert pending.get("default") is None

    def test_id_in_first_utterance_skips_id_question(self, engine, pending):
        """'create new token with id 8' goes straight to the value question."""
        result = engine.process_turn("create new token with id 8")
        assert result.response == "What value would you like to give token 8?"
        assert result.context == "drupai_token.create_response.get_value"
        assert pending.get("default") == 8

    def test_zero_id_is_not_a_number(self, engine):
        """An id of 0 is asked for again."""
        result = engine.process_turn("create token with id 0")
        assert result.response == ASK_CREATE_ID

    def test_bad_id_is_asked_again(self, engine, diagnostics):
        """Unlike get and delete, create gives a second chance."""
        result = engine.process_turn("no idea", prior_context="drupai_token.create_response")
        assert result.response == RETRY_NUMBER
        assert result.context == "drupai_token.create_response"
        assert result.closed is False
        assert any(
            "Could not parse number" in m for m in diagnostics.messages(DiagnosticLevel.WARNING)
        )

    def test_lost_id_goes_back_a_stage(self, engine, store, diagnostics):
        """With the pending id gone, the id is asked for again."""
        result = engine.process_turn(
            "hello", prior_context="drupai_token.create_response.get_value"
        )
        assert result.response == LOST_ID
        assert result.context == "drupai_token.create_response"
        assert result.closed is False
        assert len(store) == 0
        assert diagnostics.messages(DiagnosticLevel.ERROR)

    def test_empty_value_is_asked_again(self, engine, pending, store):
        """A blank value keeps the flow waiting for a value."""
        pending.set("default", 3)
        result = engine.process_turn("   ", prior_context="drupai_token.create_response.get_value")
        assert result.response == EMPTY_VALUE
        assert result.context == "drupai_token.create_response.get_value"
        assert result.closed is False
        assert pending.get("default") == 3
        assert len(store) == 0

    def test_value_is_substituted_text(self, pending, diagnostics):
        """The stored value is the answer after substitution."""
        store = InMemoryTokenStore([Token(1, "Saoirse")])
        engine = TokenConversationEngine(store=store, pending=pending, diagnostics=diagnostics)
        pending.set("default", 2)

        engine.process_turn(
            "ask token 1 about it", prior_context="drupai_token.create_response.get_value"
        )

        assert store.get(2).value == "ask Saoirse about it"

    def test_sessions_do_not_share_pending_ids(self, engine, store):
        """Two create flows at once each keep their own id."""
        a = engine.process_turn("create token", session_id="alice")
        b = engine.process_turn("create token", session_id="bob")
        a = engine.process_turn("1", prior_context=a.context, session_id="alice")
        b = engine.process_turn("2", prior_context=b.context, session_id="bob")
        engine.process_turn("from alice", prior_context=a.context, session_id="alice")
        engine.process_turn("from bob", prior_context=b.context, session_id="bob")

        assert store.get(1).value == "from alice"
        assert store.get(2).value == "from bob"

    def test_engine_keeps_no_state_between_turns(self, store, pending, diagnostics):
        """A new engine over the same stores can pick up the conversation."""
        first = TokenConversationEngine(store=store, pending=pending, diagnostics=diagnostics)
        result = first.process_turn("create new token 7", prior_context=None)
        # "token 7" is not a stored token, so the text is left alone and 7 is the id
        assert result.context == "drupai_token.create_response.get_value"

        second = TokenConversationEngine(store=store, pending=pending, diagnostics=diagnostics)
        result = second.process_turn("seven", prior_context=result.context)
        assert result.closed is True
        assert store.get(7).value == "seven"


class TestDeleteFlow:
    """Test the delete flow."""

    def test_ask_then_delete(self, seeded_store, diagnostics):
        """Asks for the id, then deletes and confirms."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)

        first = engine.process_turn("delete token")
        assert first.response == ASK_DELETE_ID
        assert first.context == "drupai_token.delete_response"
        assert first.closed is False

        second = engine.process_turn("number 1", prior_context=first.context)
        assert second.response == "Token ID 1 with value: a. Has been deleted"
        assert second.context == "drupai_token.delete_response.done"
        assert second.closed is True
        assert 1 not in seeded_store

    def test_id_in_first_utterance(self, seeded_store, diagnostics):
        """'remove token number 2' deletes at once."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        result = engine.process_turn("remove token number 2")
        assert result.response == "Token ID 2 with value: b. Has been deleted"
        assert result.closed is True
        assert [t.token_id for t in seeded_store.get_all()] == [1]

    def test_bad_id_ends_conversation(self, engine):
        """No second chance for delete."""
        result = engine.process_turn("nope", prior_context="drupai_token.delete_response")
        assert result.response == INVALID_NUMBER
        assert result.closed is True

    def test_missing_token_is_an_apology(self, engine, diagnostics):
        """Deleting an id that does not exist apologises and closes."""
        result = engine.process_turn("delete token number 9")
        assert result.response == "Sorry, I could not find token ID 9"
        assert result.context == "drupai_token.delete_response.done"
        assert result.closed is True
        assert "Token ID 9 does not exist" in diagnostics.messages(DiagnosticLevel.WARNING)

    def test_second_delete_is_harmless(self, seeded_store, diagnostics):
        """Deleting the same id twice never raises."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        engine.process_turn("delete token number 1")
        result = engine.process_turn("delete token number 1")
        assert result.response == "Sorry, I could not find token ID 1"
        assert result.closed is True


class TestGetFlow:
    """Test the get flow."""

    def test_ask_then_get(self, seeded_store, diagnostics):
        """Asks for the id, then reads it back."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)

        first = engine.process_turn("get a token")
        assert first.response == ASK_GET_ID
        assert first.context == "drupai_token.get_response"

        second = engine.process_turn("the second one, 2", prior_context=first.context)
        assert second.response == "Token ID 2. Value: b"
        assert second.context == "drupai_token.get_response.done"
        assert second.closed is True

    def test_id_in_first_utterance(self, seeded_store, diagnostics):
        """'get token number 1' answers at once."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        result = engine.process_turn("get token number 1")
        assert result.response == "Token ID 1. Value: a"

    def test_bad_id_ends_conversation(self, engine):
        """No second chance for get."""
        result = engine.process_turn("dunno", prior_context="drupai_token.get_response")
        assert result.response == INVALID_NUMBER
        assert result.closed is True

    def test_missing_token_is_an_apology(self, engine):
        """Getting an id that does not exist apologises and closes."""
        result = engine.process_turn("7", prior_context="drupai_token.get_response")
        assert result.response == "Sorry, I could not find token ID 7"
        assert result.closed is True


class TestListFlow:
    """Test the list flow."""

    def test_empty(self, engine):
        """No tokens."""
        result = engine.process_turn("list tokens")
        assert result.response == "Listing available tokens: No available tokens"
        assert result.context == "drupai_token.list_response.done"
        assert result.closed is True

    def test_two_tokens(self, seeded_store, diagnostics):
        """Tokens are listed in store order."""
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        result = engine.process_turn("enumerate the tokens")
        assert result.response == "Listing available tokens: ID: 1. Value: a. ID: 2. Value: b"


class TestUnknownContext:
    """Test contexts no handler understands."""

    @pytest.mark.parametrize(
        "context",
        [
            "drupai_token",
            "drupai_token.frobnicate",
            "drupai_token.list_response.done",
        ],
    )
    def test_generic_error(self, engine, diagnostics, context):
        """Unknown actions get a generic error and close."""
        result = engine.process_turn("anything", prior_context=context)
        assert result.response == GENERIC_ERROR
        assert result.closed is True
        assert diagnostics.messages(DiagnosticLevel.WARNING) == [
            f"Unknown drupai_token context encountered: {context}"
        ]


class TestConfiguration:
    """Test engine options."""

    def test_custom_namespace(self, store):
        """Contexts carry the configured namespace."""
        engine = TokenConversationEngine(
            store=store,
            pending=PendingStore(),
            diagnostics=RecordingDiagnosticSink(),
            namespace="snippets",
        )
        first = engine.process_turn("create token")
        assert first.context == "snippets.create_response"

        ignored = engine.process_turn("5", prior_context="drupai_token.create_response")
        assert ignored.handled is False

    def test_unknown_context_names_configured_namespace(self, store):
        """The unknown-context warning names the engine's own namespace."""
        diagnostics = RecordingDiagnosticSink()
        engine = TokenConversationEngine(store=store, diagnostics=diagnostics, namespace="snippets")

        result = engine.process_turn("anything", prior_context="snippets.frobnicate")

        assert result.response == GENERIC_ERROR
        assert diagnostics.messages(DiagnosticLevel.WARNING) == [
            "Unknown snippets context encountered: snippets.frobnicate"
        ]


class TestCompletionContexts:
    """Finished flows always end on the same context, whatever came before."""

    def test_resumed_done_context_is_not_doubled(self, seeded_store, diagnostics):
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        result = engine.process_turn("1", prior_context="drupai_token.get_response.done")
        assert result.response == "Token ID 1. Value: a"
        assert result.context == "drupai_token.get_response.done"

    def test_delete_after_extra_segments(self, seeded_store, diagnostics):
        engine = TokenConversationEngine(store=seeded_store, diagnostics=diagnostics)
        result = engine.process_turn("2", prior_context="drupai_token.delete_response.extra")
        assert result.context == "drupai_token.delete_response.done"

    def test_not_found_after_done(self, engine):
        result = engine.process_turn("9", prior_context="drupai_token.delete_response.done")
        assert result.response == "Sorry, I could not find token ID 9"
        assert result.context == "drupai_token.delete_response.done"

    def test_create_after_extra_segments(self, engine, pending, store):
        """Unknown trailing segments do not leak into the finished context."""
        pending.set("default", 4)
        result = engine.process_turn(
            "hello", prior_context="drupai_token.create_response.get_value.extra"
        )
        assert result.response == "New token ID 4 created with value: hello"
        assert result.context == "drupai_token.create_response.get_value.done"
        assert store.get(4).value == "hello"
