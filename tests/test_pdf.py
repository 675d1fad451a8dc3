from __future__ import annotations

from datetime import datetime
import unittest

from reportlab.lib import colors

from coloriai.parser import parse_report
from coloriai.pdf import FALLBACK_SWATCH, render_report_pdf, swatch_color
from tests.support import SAMPLE_REPORT, png_bytes


class SwatchColorTestCase(unittest.TestCase):
    def test_valid_hex(self) -> None:
        self.assertEqual(swatch_color("#D4AF37").hexval(), colors.HexColor("#D4AF37").hexval())

    def test_short_hex_is_expanded(self) -> None:
        self.assertEqual(swatch_color("#fff").hexval(), colors.HexColor("#FFFFFF").hexval())

    def test_invalid_falls_back_to_grey(self) -> None:
        self.assertIs(swatch_color("goldish"), FALLBACK_SWATCH)
        self.assertIs(swatch_color(""), FALLBACK_SWATCH)


class RenderReportPdfTestCase(unittest.TestCase):
    def _report(self, outfit_image="https://cdn.example.com/outfit.png") -> dict:
        return {
            "userId": "u1",
            "result": parse_report(SAMPLE_REPORT, style="Daily", outfit_image=outfit_image).model_dump(),
            "outfitImage": outfit_image,
            "createdAt": datetime(2025, 6, 1, 9, 30),
        }

    def test_renders_full_report(self) -> None:
        fetched: list[str] = []

        def fetcher(url: str) -> bytes:
            fetched.append(url)
            return png_bytes((120, 200))

        pdf = render_report_pdf(self._report(), user_name="ana", fetcher=fetcher)

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertEqual(fetched, ["https://cdn.example.com/outfit.png"])

    def test_image_fetch_failure_is_skipped(self) -> None:
        def fetcher(url: str) -> bytes:
            raise OSError("404")

        with self.assertLogs("coloriai.pdf", level="WARNING"):
            pdf = render_report_pdf(self._report(), fetcher=fetcher)
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_undecodable_image_is_skipped(self) -> None:
        report = {"result": {"seasonType": "Soft Autumn"}, "outfitImage": "https://cdn.example.com/o.png"}

        with self.assertLogs("coloriai.pdf", level="WARNING"):
            pdf = render_report_pdf(report, fetcher=lambda url: b"<html>not found</html>")
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_null_and_numeric_fields(self) -> None:
        report = {
            "result": {
                "seasonType": None,
                "colorPalette": [{"name": None, "hex": 123}],
                "makeup": {"lipsticks": [{"brand": "MAC", "product": "Matte", "shade": None, "hex": None, "url": None}]},
                "celebrities": ["Kim Tae-ri", None],
                "outfit": {"styleType": None},
            },
        }
        pdf = render_report_pdf(report, fetcher=lambda url: b"")
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_empty_result(self) -> None:
        pdf = render_report_pdf({"result": {}}, fetcher=lambda url: b"")
        self.assertTrue(pdf.startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
