from __future__ import annotations

import io
import logging
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from starlette.concurrency import run_in_threadpool

from chefscript.app.domain.errors import SpreadsheetError
from chefscript.app.domain.pricing import FEEDSPY_ALLOWED_COUNTS, feedspy_cost
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.errors import InvalidInputError, InvalidResponseError
from chefscript.services.recipe_generator import RecipeGenerator

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xls", ".xlsx")
SOURCE_COLUMN = 5  # column E


def validate_upload(filename: str, count: int) -> None:
    if not (filename or "").lower().endswith(ALLOWED_EXTENSIONS):
        raise InvalidInputError("Please upload an Excel file (.xls or .xlsx)")
    if count not in FEEDSPY_ALLOWED_COUNTS:
        allowed = ", ".join(str(value) for value in FEEDSPY_ALLOWED_COUNTS)
        raise InvalidInputError(f"Recipe count must be one of {allowed}")


def read_column_e(content: bytes) -> list[str]:
    """
    Non-empty cell values of column E on the first sheet, top to bottom.
    Only the Office Open XML format can be read; legacy binary workbooks
    must be re-saved as .xlsx.
    """
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise SpreadsheetError(
            "Excel file is empty or invalid. Legacy .xls files must be saved as .xlsx first."
        ) from exc

    try:
        if not workbook.sheetnames:
            raise SpreadsheetError("Excel file is empty or invalid")
        sheet = workbook[workbook.sheetnames[0]]
        values = [
            str(value)
            for (value,) in sheet.iter_rows(min_col=SOURCE_COLUMN, max_col=SOURCE_COLUMN, values_only=True)
            if value not in (None, "")
        ]
    finally:
        workbook.close()

    if not values:
        raise SpreadsheetError("No data found in column E")
    return values


class FeedSpyExtractor:
    """Turns a FeedSpy export into a list of recipe names, charged per 25 names."""

    def __init__(self, generator: RecipeGenerator, ledger: TokenLedger) -> None:
        self._generator = generator
        self._ledger = ledger

    async def extract(self, user_id: str, filename: str, content: bytes, count: int) -> str:
        validate_upload(filename, count)
        required = feedspy_cost(count)
        await run_in_threadpool(
            self._ledger.ensure_balance,
            user_id,
            required,
            f"Insufficient tokens. This operation requires {required} tokens.",
        )

        rows = await run_in_threadpool(read_column_e, content)
        logger.info("feedspy.extract user=%s rows=%d count=%d", user_id, len(rows), count)

        recipes = await self._generator.generate_recipe_list("\n".join(rows), count)
        if not recipes.strip():
            raise InvalidResponseError("Failed to generate recipe list")

        await run_in_threadpool(self._ledger.charge, user_id, required)
        return recipes
