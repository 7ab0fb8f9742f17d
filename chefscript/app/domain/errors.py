from __future__ import annotations


class ChefScriptError(Exception):
    pass


class MissingSectionsError(ChefScriptError):
    def __init__(self, missing: list[str]):
        super().__init__(f"Missing required sections: {', '.join(missing)}")
        self.missing = missing


class InsufficientTokensError(ChefScriptError):
    def __init__(self, required: int, balance: int = 0, message: str | None = None):
        super().__init__(message or f"Insufficient tokens. This operation requires {required} tokens.")
        self.required = required
        self.balance = balance


class TokenLedgerError(ChefScriptError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Token ledger error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class TemplateNotFoundError(ChefScriptError):
    def __init__(self, template_id: str | None = None):
        message = f"Template not found: {template_id}" if template_id else "No active template found"
        super().__init__(message)
        self.template_id = template_id


class InvalidSceneError(ChefScriptError):
    pass


class LayerNotFoundError(InvalidSceneError):
    def __init__(self, layer_id: str):
        super().__init__(f"Layer not found: {layer_id}")
        self.layer_id = layer_id


class PlaceholderError(InvalidSceneError):
    def __init__(self, message: str = "Only text elements can be set as title placeholders"):
        super().__init__(message)


class StyleCreationError(ChefScriptError):
    pass


class SpreadsheetError(ChefScriptError):
    pass


class PaymentError(ChefScriptError):
    def __init__(self, message: str, order_id: str | None = None):
        super().__init__(message)
        self.order_id = order_id
