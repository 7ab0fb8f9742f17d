from __future__ import annotations

import asyncio
import io

import pytest
from openpyxl import Workbook

from chefscript.app.domain.errors import InsufficientTokensError, SpreadsheetError
from chefscript.app.domain.models import ChargeResult
from chefscript.app.infra.db.base import TokenRepository
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.errors import InvalidInputError
from chefscript.services.feedspy import FeedSpyExtractor, read_column_e, validate_upload


class InMemoryTokenRepository(TokenRepository):
    def __init__(self, balance: int) -> None:
        self.balance = balance

    def get_balance(self, user_id: str) -> int:
        return self.balance

    def charge(self, user_id: str, amount: int) -> ChargeResult:
        self.balance -= amount
        return ChargeResult(allowed=True, balance=self.balance, amount=amount)

    def credit(self, user_id: str, amount: int) -> int:
        self.balance += amount
        return self.balance


class GeneratorStub:
    def __init__(self, answer: str = "Greek Salad\nLemon Chicken") -> None:
        self.answer = answer
        self.calls: list[tuple[str, int]] = []

    async def generate_recipe_list(self, feedspy_data: str, count: int) -> str:
        self.calls.append((feedspy_data, count))
        return self.answer


def _workbook(rows: list[list]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


class TestValidateUpload:
    def test_extension(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_upload("export.csv", 25)
        validate_upload("EXPORT.XLSX", 25)

    def test_count(self) -> None:
        with pytest.raises(InvalidInputError, match="25, 50, 75, 100"):
            validate_upload("export.xlsx", 30)


class TestReadColumnE:
    def test_reads_non_empty_cells(self) -> None:
        content = _workbook([
            ["a", "b", "c", "d", "Best pasta ideas"],
            ["a", "b", "c", "d", None],
            ["a", "b", "c", "d", "Soup season"],
        ])

        assert read_column_e(content) == ["Best pasta ideas", "Soup season"]

    def test_empty_column(self) -> None:
        with pytest.raises(SpreadsheetError, match="column E"):
            read_column_e(_workbook([["only", "a", "few", "cells"]]))

    def test_not_a_workbook(self) -> None:
        with pytest.raises(SpreadsheetError):
            read_column_e(b"\xd0\xcf\x11\xe0 legacy binary")


class TestFeedSpyExtractor:
    def test_charges_per_started_block(self) -> None:
        repo = InMemoryTokenRepository(balance=5)
        generator = GeneratorStub()
        content = _workbook([["", "", "", "", "Pasta night"], ["", "", "", "", "Taco tuesday"]])

        result = asyncio.run(FeedSpyExtractor(generator, TokenLedger(repo)).extract("u1", "feed.xlsx", content, 50))

        assert result == "Greek Salad\nLemon Chicken"
        assert generator.calls == [("Pasta night\nTaco tuesday", 50)]
        assert repo.balance == 3

    def test_balance_checked_before_reading(self) -> None:
        repo = InMemoryTokenRepository(balance=1)
        generator = GeneratorStub()

        with pytest.raises(InsufficientTokensError, match="requires 4 tokens"):
            asyncio.run(FeedSpyExtractor(generator, TokenLedger(repo)).extract("u1", "feed.xlsx", b"", 100))

        assert generator.calls == []
