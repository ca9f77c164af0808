"""
Google Sheets table gateway.

Wraps the Sheets v4 API behind the TableGateway contract. Calls are blocking
in googleapiclient, so each one runs in the default executor and the
reconciler awaits it before taking its next decision.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Sequence

from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from inventory_sync.config import get_settings
from inventory_sync.sheets.a1 import quote_worksheet
from inventory_sync.sheets.auth import ServiceAccountAuth
from inventory_sync.sheets.base import Color, Rows, TableGateway, TableRef
from inventory_sync.utils.errors import (
    GatewayAuthenticationError,
    GatewayError,
    GatewayQuotaExceededError,
    RangeSpecError,
    WorksheetNotFoundError,
)
from inventory_sync.utils.logging import get_logger, log_performance

logger = get_logger(__name__)

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, HttpError) and error.resp.status in TRANSIENT_STATUSES


class GoogleSheetsGateway(TableGateway):
    """Table gateway backed by the Google Sheets API."""

    def __init__(self, auth_manager: Optional[ServiceAccountAuth] = None) -> None:
        """
        Initialize the Sheets gateway.

        Args:
            auth_manager: Authentication manager (service account from settings if None)
        """
        self.settings = get_settings()
        self.auth_manager = auth_manager or ServiceAccountAuth(self.settings.credentials_file)

        self._service: Optional[Resource] = None
        self._sheet_ids: Dict[str, Dict[str, int]] = {}

    async def connect(self) -> None:
        """
        Connect to the Google Sheets API.

        Raises:
            GatewayAuthenticationError: If authentication fails
            GatewayError: If the service cannot be built
        """
        if not self.auth_manager.is_authenticated:
            await self.auth_manager.authenticate()

        try:
            self._service = build(
                "sheets",
                "v4",
                credentials=self.auth_manager.credentials,
                cache_discovery=False,
            )
            logger.info("Connected to Google Sheets API")
        except Exception as e:
            logger.error(f"Failed to build Sheets service: {e}")
            raise GatewayError(f"Failed to connect to Sheets API: {str(e)}")

    def ensure_connected(self) -> None:
        """Ensure client is connected to the Sheets API."""
        if not self._service:
            raise GatewayError("Not connected to Sheets API. Call connect() first.")

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _execute(self, request_factory: Callable[[], Any]) -> Dict[str, Any]:
        """Run one API request in the executor, retrying transient HTTP errors."""
        return await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: request_factory().execute(),
        )

    async def _call(self, operation: str, request_factory: Callable[[], Any], range_spec: str = "") -> Dict[str, Any]:
        self.ensure_connected()
        try:
            return await self._execute(request_factory)
        except HttpError as e:
            raise self._map_error(e, operation, range_spec) from e

    def _map_error(self, error: HttpError, operation: str, range_spec: str) -> Exception:
        status = error.resp.status
        if status == 429:
            retry_after = error.resp.get("retry-after", 60)
            return GatewayQuotaExceededError(retry_after=int(retry_after))
        if status in (401, 403):
            return GatewayAuthenticationError(
                f"Access denied during {operation}: {str(error)}", {"status": status}
            )
        if status == 400 and range_spec and "Unable to parse range" in str(error):
            return RangeSpecError(range_spec)

        logger.error(f"Sheets {operation} failed: {error}")
        return GatewayError(f"Sheets {operation} failed: {str(error)}", {"status": status})

    @staticmethod
    def _qualify(table: TableRef, range_spec: str) -> str:
        if "!" in range_spec:
            return range_spec
        return f"{quote_worksheet(table.worksheet)}!{range_spec}"

    async def _sheet_id(self, table: TableRef) -> int:
        """Numeric id of a worksheet, cached per spreadsheet and title."""
        cached = self._sheet_ids.get(table.spreadsheet_id)
        if cached is None:
            response = await self._call(
                "metadata lookup",
                lambda: self._service.spreadsheets().get(
                    spreadsheetId=table.spreadsheet_id,
                    fields="sheets.properties(sheetId,title)",
                ),
            )
            cached = {
                sheet["properties"]["title"]: sheet["properties"]["sheetId"]
                for sheet in response.get("sheets", [])
            }
            self._sheet_ids[table.spreadsheet_id] = cached

        if table.worksheet not in cached:
            raise WorksheetNotFoundError(table.worksheet)
        return cached[table.worksheet]

    @log_performance
    async def read_range(self, table: TableRef, range_spec: str) -> Rows:
        qualified = self._qualify(table, range_spec)
        response = await self._call(
            "read",
            lambda: self._service.spreadsheets().values().get(
                spreadsheetId=table.spreadsheet_id,
                range=qualified,
            ),
            qualified,
        )
        return [[str(cell) for cell in row] for row in response.get("values", [])]

    @log_performance
    async def update_range(self, table: TableRef, range_spec: str, values: Sequence[Sequence[str]]) -> None:
        qualified = self._qualify(table, range_spec)
        body = {"values": [list(row) for row in values]}
        await self._call(
            "update",
            lambda: self._service.spreadsheets().values().update(
                spreadsheetId=table.spreadsheet_id,
                range=qualified,
                valueInputOption="RAW",
                body=body,
            ),
            qualified,
        )

    async def _batch_update(self, table: TableRef, operation: str, request: Dict[str, Any]) -> None:
        await self._call(
            operation,
            lambda: self._service.spreadsheets().batchUpdate(
                spreadsheetId=table.spreadsheet_id,
                body={"requests": [request]},
            ),
        )

    @log_performance
    async def insert_row_at(self, table: TableRef, index: int) -> None:
        sheet_id = await self._sheet_id(table)
        await self._batch_update(
            table,
            "row insert",
            {
                "insertDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        "startIndex": index,
                        "endIndex": index + 1,
                    },
                    "inheritFromBefore": False,
                }
            },
        )

    @log_performance
    async def highlight_row(self, table: TableRef, row_index: int, color: Color) -> None:
        sheet_id = await self._sheet_id(table)
        red, green, blue = color
        await self._batch_update(
            table,
            "highlight",
            {
                "repeatCell": {
                    "range": {
                        "sheetId": sheet_id,
                        "startRowIndex": row_index - 1,
                        "endRowIndex": row_index,
                    },
                    "cell": {
                        "userEnteredFormat": {
                            "backgroundColor": {"red": red, "green": green, "blue": blue},
                        }
                    },
                    "fields": "userEnteredFormat.backgroundColor",
                }
            },
        )


async def create_gateway(auth_manager: Optional[ServiceAccountAuth] = None) -> GoogleSheetsGateway:
    """Build and connect a gateway from settings."""
    gateway = GoogleSheetsGateway(auth_manager)
    await gateway.connect()
    return gateway
