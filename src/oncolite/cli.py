"""Command-line interface for OncoLite."""

import csv
import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .classifier import CancerClassifier
from .config import OncoLiteConfig
from .constants import CSV_HEADER, REPORT_FILENAME
from .formatting import (
    build_record,
    get_output_format,
    write_csv_row,
    write_json_array,
    write_jsonl,
)
from .preprocess import load_image
from .ranking import rank
from .report import Demographics, render_pdf, save_pdf
from .taxonomy import CLASS_LABELS, organ_of
from .utils import save_json, setup_logger

app = typer.Typer(help="OncoLite: multi-cancer image classification with PDF reports")
console = Console()
logger = setup_logger()

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.webp'}


def _load_classifier(model: Optional[str], quiet: bool) -> CancerClassifier:
    config = OncoLiteConfig.from_env().with_overrides(model_location=model)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        disable=quiet  # Disable progress for structured output
    ) as progress:
        progress.add_task("Loading model...", total=None)
        return CancerClassifier.from_config(config)


@app.command()
def infer(
    image: Path = typer.Argument(..., help="Path to image file"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model path, URL or hf://repo/file"),
    topk: int = typer.Option(3, "--topk", "-k", help="Number of top predictions"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON"),
    csv_out: bool = typer.Option(False, "--csv", help="Output as CSV"),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print JSON (only with --json)")
):
    """Classify a single image."""
    try:
        # Validate mutual exclusivity
        if json_out and csv_out:
            raise typer.BadParameter("Use either --json or --csv, not both.")

        if not image.exists():
            console.print(f"[red]Error: Image file {image} does not exist[/red]")
            raise typer.Exit(1)

        classifier = _load_classifier(model, quiet=json_out or csv_out)
        probs = classifier.predict_image(image)
        record = build_record(str(image), probs, k=topk)

        # Handle structured output
        if json_out:
            if output:
                with open(output, 'w') as f:
                    json.dump(record, f, indent=2 if pretty else None, separators=(',', ':') if not pretty else None)
            else:
                json.dump(record, sys.stdout, indent=2 if pretty else None, separators=(',', ':') if not pretty else None)
                sys.stdout.write('\n')

        elif csv_out:
            if output:
                with open(output, 'w', newline='') as f:
                    writer = csv.writer(f)
                    writer.writerow(CSV_HEADER)
                    write_csv_row(writer, record)
            else:
                writer = csv.writer(sys.stdout)
                writer.writerow(CSV_HEADER)
                write_csv_row(writer, record)

        else:
            ranking = rank(probs, classifier.labels, k=topk)
            console.print(ranking.result_text)

            table = Table(title="Top Predictions")
            table.add_column("#", style="dim")
            table.add_column("Class", style="cyan")
            table.add_column("Organ", style="blue")
            table.add_column("Confidence", style="magenta")

            for i, result in enumerate(ranking.top, start=1):
                table.add_row(str(i), result.label, organ_of(result.label), f"{result.confidence:.1f}%")

            console.print(table)

            if output:
                save_json(record, output)
                console.print(f"[green]Results saved to {output}[/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def batch(
    folder: Path = typer.Argument(..., help="Path to folder containing images"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model path, URL or hf://repo/file"),
    topk: int = typer.Option(3, "--topk", "-k", help="Number of top predictions"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON"),
    csv_out: bool = typer.Option(False, "--csv", help="Output as CSV"),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print JSON (only with --json)")
):
    """Batch inference on a folder of images."""
    try:
        # Validate mutual exclusivity
        if json_out and csv_out:
            raise typer.BadParameter("Use either --json or --csv, not both.")

        if not folder.exists() or not folder.is_dir():
            console.print(f"[red]Error: Folder {folder} does not exist or is not a directory[/red]")
            raise typer.Exit(1)

        image_files = sorted(f for f in folder.iterdir() if f.suffix.lower() in IMAGE_EXTENSIONS)

        if not image_files:
            console.print(f"[red]Error: No image files found in {folder}[/red]")
            raise typer.Exit(1)

        classifier = _load_classifier(model, quiet=json_out or csv_out)

        records = []
        for img_file in image_files:
            try:
                probs = classifier.predict_image(img_file)
                records.append(build_record(str(img_file), probs, k=topk))
            except Exception as e:
                # Handle unreadable images
                logger.warning(f"Skipping {img_file.name}: {e}")
                error_record = build_record(str(img_file), None, k=topk)
                error_record["error"] = str(e)
                records.append(error_record)

        if json_out:
            if output:
                output_format = get_output_format(output)
                with open(output, 'w') as f:
                    if output_format == "json":
                        write_json_array(f, records, pretty=pretty)
                    else:  # jsonl
                        write_jsonl(f, records)
            else:
                # Default to JSONL on stdout
                write_jsonl(sys.stdout, records)

        elif csv_out:
            if output:
                with open(output, 'w', newline='') as f:
                    writer = csv.writer(f)
                    writer.writerow(CSV_HEADER)
                    for record in records:
                        write_csv_row(writer, record)
            else:
                writer = csv.writer(sys.stdout)
                writer.writerow(CSV_HEADER)
                for record in records:
                    write_csv_row(writer, record)

        else:
            console.print(f"[green]Processed {len(records)} images[/green]")

            if output:
                save_json(records, output)
                console.print(f"[green]Results saved to {output}[/green]")
            else:
                table = Table(title="Batch Results (first 5)")
                table.add_column("Image", style="cyan")
                table.add_column("Top Prediction", style="magenta")
                table.add_column("Confidence", style="green")

                for record in records[:5]:
                    if record["predicted_label"]:
                        table.add_row(
                            Path(record["image"]).name,
                            record["predicted_label"],
                            f"{record['confidence']:.1f}%"
                        )

                console.print(table)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def report(
    image: Path = typer.Argument(..., help="Path to image file"),
    name: str = typer.Option("", "--name", help="Patient name"),
    patient_id: str = typer.Option("", "--patient-id", help="Patient identifier"),
    age: str = typer.Option("", "--age", help="Patient age"),
    gender: str = typer.Option("", "--gender", help="Patient gender"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model path, URL or hf://repo/file"),
    output: Path = typer.Option(Path(REPORT_FILENAME), "--output", "-o", help="Output PDF file")
):
    """Classify an image and write a PDF report with patient demographics."""
    try:
        if not image.exists():
            console.print(f"[red]Error: Image file {image} does not exist[/red]")
            raise typer.Exit(1)

        # Validate before any model work so a bad form has no side effects
        patient = Demographics(name=name, patient_id=patient_id, age=age, gender=gender).validate()

        classifier = _load_classifier(model, quiet=False)
        pil_image = load_image(image)
        ranking = rank(classifier.predict_image(pil_image), classifier.labels)

        pdf = render_pdf(patient, ranking.main.format_main(), ranking.top_entries, pil_image)
        save_pdf(output, pdf)

        console.print(ranking.result_text)
        console.print(f"[green]Report saved to {output}[/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def labels():
    """List the class labels in model output order."""
    table = Table(title="Class Labels")
    table.add_column("Index", style="dim")
    table.add_column("Label", style="cyan")
    table.add_column("Organ", style="blue")

    for idx, label in enumerate(CLASS_LABELS):
        table.add_row(str(idx), label, organ_of(label))

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model path, URL or hf://repo/file"),
    top3: Optional[bool] = typer.Option(None, "--top3/--no-top3", help="Show the top-3 list"),
    export: Optional[bool] = typer.Option(None, "--export/--no-export", help="Enable PDF export")
):
    """Serve the classification page."""
    import uvicorn

    from .server import create_app

    config = OncoLiteConfig.from_env().with_overrides(
        model_location=model, show_top3=top3, enable_export=export
    )
    console.print(f"Serving on http://{host}:{port} (model: {config.model_location})")
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    app()
