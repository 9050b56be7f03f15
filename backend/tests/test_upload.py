"""
Excel upload tests: parser behaviour and the /api/files endpoints.
"""

from __future__ import annotations

import io
from datetime import date, datetime

from httpx import AsyncClient

from pointage.services.excel_parser import parse_excel
from tests.helpers import build_workbook

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ROWS = [
    ["E001", "Amina Benali", "2025-01-06", "09:12", None, None, None, None],
    ["E001", "Amina Benali", "2025-01-06", "18:05 OUT", None, None, None, None],
    ["Z999", "Ghost", "2025-01-06", "09:00", None, None, None, None],
    ["E001", "Amina Benali", "2025-01-07", None, None, None, "A", "no call"],
    ["E001", "Amina Benali", "not a date", "09:00", None, None, None, None],
    ["E001", "Amina Benali", "2025-01-08", None, None, None, None, None],
]


def _parse(rows: list[list], **kwargs):
    return parse_excel(io.BytesIO(build_workbook(rows, **kwargs)))


class TestParseExcel:
    def test_rows(self) -> None:
        punches, absences, errors = _parse(ROWS)

        assert [(p.matricule, p.punch_time, p.direction) for p in punches] == [
            ("E001", datetime(2025, 1, 6, 9, 12), "IN"),
            ("E001", datetime(2025, 1, 6, 18, 5), "OUT"),
            ("Z999", datetime(2025, 1, 6, 9, 0), "IN"),
        ]
        assert [(a.matricule, a.date, a.absence, a.note) for a in absences] == [
            ("E001", date(2025, 1, 7), "A", "no call"),
        ]
        assert errors == [
            "Row 6: invalid date 'not a date'",
            "Row 7: no punch time or hours",
        ]

    def test_header_found_below_title_rows(self) -> None:
        punches, _, errors = _parse(ROWS[:1], title_rows=2)
        assert len(punches) == 1
        assert errors == []

        _, _, errors = _parse([["", "x", "2025-01-06", "09:00"]], title_rows=2)
        assert errors == ["Row 4: missing matricule"]

    def test_hours_only_and_day_first_dates(self) -> None:
        punches, _, errors = _parse([["E001", "", "06/01/2025", None, "7,5", "12", None, None]])
        assert errors == []
        assert punches[0].punch_time == datetime(2025, 1, 6, 0, 0)
        assert punches[0].raw_hours == 7.5
        assert punches[0].raw_lateness == 12

    def test_repeated_header_skipped(self) -> None:
        rows = [ROWS[0], ["Matricule.", "Nom.", "Date", "Punch"], ROWS[1]]
        punches, _, errors = _parse(rows)
        assert len(punches) == 2
        assert errors == []

    def test_alias_headers(self) -> None:
        punches, _, _ = _parse(
            [["E001", "2025-01-06", "08:58", "Sortie"]],
            headers=["Mat", "Jour", "Heure", "Sens"],
        )
        assert punches[0].direction == "OUT"
        assert punches[0].punch_time == datetime(2025, 1, 6, 8, 58)

    def test_missing_required_column(self) -> None:
        punches, absences, errors = _parse([["Amina", "09:00"]], headers=["Nom", "Punch"])
        assert (punches, absences) == ([], [])
        assert errors == ["Missing required columns: matricule, date"]

    def test_row_limit(self) -> None:
        content = build_workbook(ROWS)
        punches, _, errors = parse_excel(io.BytesIO(content), max_rows=3)
        assert punches == []
        assert errors == ["File has 6 rows; the limit is 3"]


async def _upload(client: AsyncClient, content: bytes, filename: str = "pointage.xlsx"):
    return await client.post(
        "/api/files/upload", files={"file": (filename, content, XLSX)}
    )


class TestUploadEndpoint:
    async def test_upload_and_reupload(self, client: AsyncClient) -> None:
        resp = await client.put("/api/employees/E001", json={"first_name": "Amina"})
        assert resp.status_code == 200, resp.text
        content = build_workbook(ROWS)

        resp = await _upload(client, content)
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["status"] == "partial"
        assert data["total"] == 5
        assert data["inserted_count"] == 2
        assert data["skipped"] == 0
        assert data["unmatched_count"] == 1
        assert "Z999" in data["unmatched"][0]
        assert data["error_count"] == 2
        assert data["absences"]["imported"] == 1

        resp = await client.get("/api/employees/E001")
        assert len(resp.json()["punches"]) == 2

        resp = await client.get("/api/absences/", params={"year": 2025, "month": 1})
        assert [(a["date"], a["source"]) for a in resp.json()] == [("2025-01-07", "FILE")]

        resp = await client.get(
            "/api/analytics/employees/E001/days", params={"year": 2025, "month": 1}
        )
        days = resp.json()
        assert days[5]["status"] == "Late"
        assert days[6]["status"] == "Absent"

        resp = await _upload(client, content)
        data = resp.json()
        assert data["inserted_count"] == 0
        assert data["skipped"] == 2
        assert data["status"] == "partial"

        resp = await client.get("/api/employees/E001")
        assert len(resp.json()["punches"]) == 2

    async def test_nothing_matched_fails(self, client: AsyncClient) -> None:
        resp = await _upload(client, build_workbook(ROWS[2:3]))
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "failed"

    async def test_clean_upload_succeeds(self, client: AsyncClient) -> None:
        await client.put("/api/employees/E001", json={"first_name": "Amina"})
        resp = await _upload(client, build_workbook(ROWS[:2]))
        assert resp.json()["status"] == "success"

    async def test_unsupported_extension(self, client: AsyncClient) -> None:
        resp = await _upload(client, b"matricule,date\n", filename="pointage.txt")
        assert resp.status_code == 400
        assert ".txt" in resp.json()["detail"]

    async def test_history(self, client: AsyncClient) -> None:
        resp = await client.get("/api/files/history")
        assert resp.json()["total"] == 0

        first = (await _upload(client, build_workbook(ROWS[2:3]), "first.xlsx")).json()
        await client.put("/api/employees/E001", json={"first_name": "Amina"})
        second = (await _upload(client, build_workbook(ROWS[:2]), "second.xlsx")).json()

        resp = await client.get("/api/files/history", params={"per_page": 1})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["total"] == 2
        assert data["pages"] == 2
        assert data["items"][0]["upload_id"] == second["upload_id"]
        assert data["items"][0]["logs"]["inserted"] == 2

        resp = await client.get("/api/files/history", params={"per_page": 1, "page": 2})
        assert resp.json()["items"][0]["upload_id"] == first["upload_id"]
        assert resp.json()["items"][0]["status"] == "failed"
