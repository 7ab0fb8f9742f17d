from __future__ import annotations

from chefscript.app.domain.errors import (
    ChefScriptError,
    InsufficientTokensError,
    InvalidSceneError,
    LayerNotFoundError,
    MissingSectionsError,
    PaymentError,
    PlaceholderError,
    SpreadsheetError,
    StyleCreationError,
    TemplateNotFoundError,
    TokenLedgerError,
)


class TestMissingSectionsError:
    def test_lists_missing_markers(self) -> None:
        error = MissingSectionsError(["HASHTAGS", "MACRO_PROMPT"])
        assert str(error) == "Missing required sections: HASHTAGS, MACRO_PROMPT"
        assert error.missing == ["HASHTAGS", "MACRO_PROMPT"]
        assert isinstance(error, ChefScriptError)


class TestInsufficientTokensError:
    def test_default_message(self) -> None:
        error = InsufficientTokensError(required=10, balance=3)
        assert "requires 10 tokens" in str(error)
        assert error.required == 10
        assert error.balance == 3

    def test_custom_message(self) -> None:
        error = InsufficientTokensError(required=4, message="Need more")
        assert str(error) == "Need more"
        assert error.balance == 0


class TestTokenLedgerError:
    def test_operation_and_reason(self) -> None:
        error = TokenLedgerError("charge", "Failed to deduct tokens")
        assert error.operation == "charge"
        assert "Failed to deduct tokens" in str(error)


class TestTemplateNotFoundError:
    def test_without_id(self) -> None:
        assert str(TemplateNotFoundError()) == "No active template found"

    def test_with_id(self) -> None:
        error = TemplateNotFoundError("tpl-1")
        assert "tpl-1" in str(error)
        assert error.template_id == "tpl-1"


class TestSceneErrors:
    def test_layer_not_found_is_scene_error(self) -> None:
        error = LayerNotFoundError("abc")
        assert error.layer_id == "abc"
        assert isinstance(error, InvalidSceneError)

    def test_placeholder_default_message(self) -> None:
        error = PlaceholderError()
        assert str(error) == "Only text elements can be set as title placeholders"
        assert isinstance(error, InvalidSceneError)


class TestOtherErrors:
    def test_payment_error_keeps_order(self) -> None:
        error = PaymentError("declined", order_id="ORDER-1")
        assert error.order_id == "ORDER-1"
        assert isinstance(error, ChefScriptError)

    def test_simple_errors(self) -> None:
        assert isinstance(StyleCreationError("x"), ChefScriptError)
        assert isinstance(SpreadsheetError("x"), ChefScriptError)
