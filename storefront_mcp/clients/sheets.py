"""Async Google Sheets v4 client implementing the :class:`SheetStore` primitives."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Sequence
from urllib.parse import quote

import aiohttp
import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from storefront_mcp.data.store import AddTab, ResizeGrid, StructuralOp, TabInfo
from storefront_mcp.errors import ConfigError, StoreError

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
_REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=20)
_METADATA_FIELDS = "sheets(properties(sheetId,title,gridProperties(rowCount,columnCount)))"
_UPDATED_ROW_RE = re.compile(r"![A-Z]+(\d+)")


class GoogleTokenProvider:
    """Bearer tokens from Application Default Credentials (service account on Cloud Run).

    Share one instance per process: credentials are discovered once and the
    token is reused until google-auth reports it expired.
    """

    def __init__(self, scopes: Sequence[str] = (SHEETS_SCOPE,)) -> None:
        self._scopes = list(scopes)
        self._credentials: Any = None
        self._lock = asyncio.Lock()

    async def token(self) -> str:
        async with self._lock:
            if self._credentials is None:
                # blocking: may query the metadata server
                self._credentials, _ = await asyncio.to_thread(google.auth.default, scopes=self._scopes)
            if not self._credentials.valid:
                await asyncio.to_thread(self._credentials.refresh, Request())
            return self._credentials.token


def _to_request(op: StructuralOp) -> dict[str, Any]:
    if isinstance(op, AddTab):
        return {"addSheet": {"properties": {"title": op.title}}}
    if isinstance(op, ResizeGrid):
        grid: dict[str, int] = {"rowCount": op.row_count}
        fields = ["gridProperties.rowCount"]
        if op.column_count is not None:
            grid["columnCount"] = op.column_count
            fields.append("gridProperties.columnCount")
        return {
            "updateSheetProperties": {
                "properties": {"sheetId": op.sheet_id, "gridProperties": grid},
                "fields": ",".join(fields),
            }
        }
    raise TypeError(f"unsupported structural op {op!r}")


class SheetsClient:
    """Async client bound to one spreadsheet.  Never retries; failures raise StoreError."""

    BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        token_provider: GoogleTokenProvider | None = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id.strip()
        self.session: aiohttp.ClientSession | None = None
        self._tokens = token_provider or GoogleTokenProvider()

    async def __aenter__(self) -> SheetsClient:
        if not self.spreadsheet_id:
            raise ConfigError("Missing GOOGLE_SHEET_ID env var", code="MISSING_SPREADSHEET_ID")
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.session:
            await self.session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        if not self.session:
            raise RuntimeError("Client not entered as context manager")

        url = f"{self.BASE_URL}/{self.spreadsheet_id}{path}"
        try:
            headers = {"Authorization": f"Bearer {await self._tokens.token()}"}
            async with self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=_REQUEST_TIMEOUT,
            ) as resp:
                raw_text = await resp.text()
                payload: Any = {}
                if raw_text:
                    try:
                        payload = json.loads(raw_text)
                    except json.JSONDecodeError:
                        payload = {"raw": raw_text}

                if resp.status >= 400:
                    message = f"Sheets request failed with HTTP {resp.status}."
                    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                        message = str(payload["error"].get("message") or message)
                    logger.error("Sheets %s %s -> HTTP %s: %s", method, path, resp.status, message)
                    raise StoreError(
                        message,
                        code="SHEETS_HTTP_ERROR",
                        status=resp.status,
                        details={"path": path, "response": payload},
                    )
                return payload
        except StoreError:
            raise
        except GoogleAuthError as exc:
            logger.error("Sheets credentials unavailable (%s): %s", path, exc)
            raise StoreError(
                "Could not obtain Google credentials for the Sheets API.",
                code="AUTH_ERROR",
                details={"path": path, "error": str(exc)},
            ) from exc
        except TimeoutError as exc:
            raise StoreError(
                "Sheets request timed out.",
                code="TIMEOUT",
                details={"path": path},
            ) from exc
        except aiohttp.ClientError as exc:
            logger.error("Sheets client error (%s): %s", path, exc)
            raise StoreError(
                "Sheets request failed due to a network/client error.",
                code="NETWORK_ERROR",
                details={"path": path, "error": str(exc)},
            ) from exc

    @staticmethod
    def _values_path(range_spec: str, suffix: str = "") -> str:
        return f"/values/{quote(range_spec, safe='')}{suffix}"

    async def get_metadata(self) -> list[TabInfo]:
        data = await self._request("GET", "", params={"fields": _METADATA_FIELDS})
        tabs: list[TabInfo] = []
        for sheet in data.get("sheets", []) if isinstance(data, dict) else []:
            props = sheet.get("properties", {})
            grid = props.get("gridProperties", {})
            tabs.append(
                TabInfo(
                    sheet_id=int(props.get("sheetId", 0)),
                    title=str(props.get("title", "")),
                    row_count=int(grid.get("rowCount", 0)),
                    column_count=int(grid.get("columnCount", 0)),
                )
            )
        return tabs

    async def batch_update(self, ops: Sequence[StructuralOp]) -> None:
        if not ops:
            return
        await self._request(
            "POST", ":batchUpdate", body={"requests": [_to_request(op) for op in ops]}
        )

    async def get_range(self, range_spec: str) -> list[list[str]]:
        data = await self._request("GET", self._values_path(range_spec))
        values = data.get("values", []) if isinstance(data, dict) else []
        return [[("" if cell is None else str(cell)) for cell in row] for row in values]

    async def update_range(self, range_spec: str, rows: Sequence[Sequence[str]]) -> None:
        await self._request(
            "PUT",
            self._values_path(range_spec),
            params={"valueInputOption": "RAW"},
            body={"values": [list(r) for r in rows]},
        )

    async def append_rows(self, range_spec: str, rows: Sequence[Sequence[str]]) -> int:
        # OVERWRITE: fill empty grid rows, never shift the rows below.
        data = await self._request(
            "POST",
            self._values_path(range_spec, ":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "OVERWRITE"},
            body={"values": [list(r) for r in rows]},
        )
        updated = ""
        if isinstance(data, dict):
            updated = str(data.get("updates", {}).get("updatedRange", ""))
        match = _UPDATED_ROW_RE.search(updated)
        if not match:
            raise StoreError(
                "Sheets append response did not report the written range",
                code="BAD_RESPONSE",
                details={"range": range_spec, "response": data},
            )
        return int(match.group(1))
