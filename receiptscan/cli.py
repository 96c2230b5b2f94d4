# receiptscan/cli.py
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
import typer

from receiptscan.config import load_settings
from receiptscan.errors import ReceiptScanError
from receiptscan.insights import detect_anomalies
from receiptscan.pipelines.receipts.extract import (
    extract_receipt_fields,
    extract_receipts_dir,
    recognition_from_text,
    scan_receipt_image,
)
from receiptscan.pipelines.receipts.patterns import make_pattern_store
from receiptscan.pipelines.receipts.preprocess import PreprocessConfig
from receiptscan.pipelines.receipts.recognize import RecognitionConfig, configure_tesseract, recognize
from receiptscan.pipelines.receipts.report import make_pattern_report
from receiptscan.pipelines.receipts.silver import write_scan_table

app = typer.Typer(help="Receipt scanner CLI")

# --- Default paths ---
IN_DIR_DEFAULT = Path("data/input/receipts")
SCAN_TABLE_DEFAULT = Path("data/output/silver/receipts/receipt_scans.csv")
REPORT_PATH_DEFAULT = Path("reports/receipts/pattern_report.md")


def _parse_today(today: Optional[str]) -> Optional[date]:
    return date.fromisoformat(today) if today else None


def _recognizer(lang: Optional[str]):
    settings = load_settings()
    configure_tesseract(settings)
    cfg = RecognitionConfig(lang=lang or settings.ocr_lang)
    return lambda image: recognize(image, cfg)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("scan")
def scan_cmd(
    image: Path = typer.Option(..., exists=True, dir_okay=False, help="Path to receipt photo"),
    remember: bool = typer.Option(False, help="Store the extracted pattern for future scans"),
    lang: Optional[str] = typer.Option(None, help="Tesseract languages (default from OCR_LANG)"),
    debug_dir: Optional[Path] = typer.Option(None, help="Write preprocessing artifacts here"),
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD) for date validation"),
):
    """
    Scan one receipt photo and print the extracted fields.
    """
    store = make_pattern_store(load_settings())
    try:
        fields = scan_receipt_image(
            str(image),
            recognizer=_recognizer(lang),
            store=store,
            remember=remember,
            today=_parse_today(today),
            preprocess_cfg=PreprocessConfig(debug_dir=debug_dir),
        )
    except ReceiptScanError as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(fields.to_dict(), indent=2, ensure_ascii=False))


@app.command("scan-dir")
def scan_dir_cmd(
    in_dir: Path = typer.Option(IN_DIR_DEFAULT, help="Folder with receipt photos"),
    out_path: Path = typer.Option(SCAN_TABLE_DEFAULT, help="CSV with one row per receipt"),
    remember: bool = typer.Option(False, help="Store extracted patterns"),
    lang: Optional[str] = typer.Option(None, help="Tesseract languages"),
):
    """
    Scan every photo in a folder and write the results table.
    """
    store = make_pattern_store(load_settings())
    results = extract_receipts_dir(str(in_dir), recognizer=_recognizer(lang), store=store, remember=remember)
    out = write_scan_table(results, out_path)
    typer.echo(json.dumps(out, indent=2))


@app.command("extract-text")
def extract_text_cmd(
    text_file: Path = typer.Option(..., exists=True, dir_okay=False, help="Already recognized receipt text"),
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD)"),
):
    """
    Extract fields from receipt text (no image, no OCR).
    """
    store = make_pattern_store(load_settings())
    recognition = recognition_from_text(text_file.read_text(encoding="utf-8"))
    fields = extract_receipt_fields(recognition, store=store, today=_parse_today(today))
    typer.echo(json.dumps(fields.to_dict(), indent=2, ensure_ascii=False))


@app.command("similar")
def similar_cmd(
    text_file: Path = typer.Option(..., exists=True, dir_okay=False, help="Receipt text to compare"),
    threshold: float = typer.Option(0.3, help="Minimum word-overlap ratio"),
):
    """
    List stored receipts similar to the given text.
    """
    store = make_pattern_store(load_settings())
    similar = store.find_similar_receipts(text_file.read_text(encoding="utf-8"), threshold=threshold)
    out = [
        {"id": p.id, "merchant": p.merchant, "date_region": p.date_region, "timestamp": p.timestamp}
        for p in similar
    ]
    typer.echo(json.dumps(out, indent=2, ensure_ascii=False))


@app.command("correct")
def correct_cmd(
    pattern_id: str = typer.Option(..., help="Stored pattern id"),
    amount: Optional[float] = typer.Option(None, help="Corrected amount"),
    date_: Optional[str] = typer.Option(None, "--date", help="Corrected date (YYYY-MM-DD)"),
):
    """
    Record the user's correction on a stored pattern.
    """
    store = make_pattern_store(load_settings())
    try:
        updated = store.record_correction(pattern_id, amount=amount, date=date_)
    except KeyError:
        typer.echo(f"[ERROR] Unknown pattern id: {pattern_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(updated.to_dict(), indent=2, ensure_ascii=False))


@app.command("report")
def report_cmd(
    out_path: Path = typer.Option(REPORT_PATH_DEFAULT, help="Markdown report output"),
):
    """
    Generate the Markdown report for the pattern store.
    """
    path = make_pattern_report(make_pattern_store(load_settings()), out_path)
    typer.echo(f"[OK] Pattern report written to {path}")


@app.command("anomalies")
def anomalies_cmd(
    expenses_csv: Path = typer.Option(..., exists=True, dir_okay=False, help="CSV with amount/category/date"),
    sigmas: float = typer.Option(2.0, help="Standard deviations above the mean"),
):
    """
    Print expenses whose amount is unusually high.
    """
    df = detect_anomalies(pd.read_csv(expenses_csv), sigmas=sigmas)
    flagged = df[df["is_anomaly"]] if "is_anomaly" in df.columns else df
    typer.echo(flagged.to_json(orient="records", indent=2, force_ascii=False))


if __name__ == "__main__":
    app()
