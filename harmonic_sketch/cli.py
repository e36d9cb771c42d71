"""Command-line interface for Harmonic Sketch.

Provides commands for:
- analyze: Key candidates, chord suggestions and progressions for a recording
- onsets: Attack times detected in an audio file
- info: Show audio file information and levels
"""

import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.table import Table

from .core import PITCH_NAMES

app = typer.Typer(
    name="harmonic-sketch",
    help="Harmonic suggestions from transcribed notes",
    rich_markup_mode="markdown",
)
console = Console()


def _load_notes(input_file: Path, with_onsets: bool = True, quiet: bool = False):
    """Notes (and audio onsets, for audio input) from any supported file."""
    from .input import AudioLoader, NoteLoader
    from .analysis import detect_onsets
    from .transcription import PyinTranscriber, TranscriptionSession

    if NoteLoader.supports(input_file):
        return NoteLoader().load(str(input_file)), None

    loader = AudioLoader()
    audio, sr = loader.load(str(input_file))
    if not quiet:
        console.print(f"   Duration: {loader.get_duration(audio, sr):.2f}s")

    session = TranscriptionSession(PyinTranscriber())
    notes = session.transcribe(audio, sr)
    onsets = detect_onsets(audio, sr) if with_onsets else None
    return notes, onsets


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Audio file, MIDI file or JSON note list"),
    key: Optional[str] = typer.Option(
        None, "--key", "-k", help="Key candidate to use instead of the best one (e.g. A-minor)"
    ),
    weirdness: float = typer.Option(
        0.0, "--weirdness", "-w", help="0 = conventional progressions, 1 = colorful"
    ),
    sevenths: bool = typer.Option(
        False, "--sevenths", help="Suggest seventh chords for diatonic degrees"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    midi: Optional[Path] = typer.Option(
        None, "--midi", help="Write the top progression to this MIDI file"
    ),
):
    """Suggest keys, chords and progressions for a recording or note file.

    **Examples:**

        harmonic-sketch analyze hum.wav

        harmonic-sketch analyze riff.mid --key A-minor -w 0.7 --midi prog.mid
    """
    from .inference import ChordEngineConfig
    from .output import MIDIExporter, to_plain
    from .pipeline import HarmonicAnalyzer
    from .transcription import TranscriptionCancelled

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    quiet = json_output
    if not quiet:
        console.print(f"\n[bold blue]Harmonic Analysis: {input_file.name}[/bold blue]\n")
        console.print("[cyan]1. Loading notes...[/cyan]")

    try:
        notes, onsets = _load_notes(input_file, quiet=quiet)
    except TranscriptionCancelled:
        console.print("[yellow]Transcription cancelled[/yellow]")
        raise typer.Exit(0)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    analyzer = HarmonicAnalyzer(chords=ChordEngineConfig(use_sevenths=sevenths))
    snapshot = analyzer.analyze(notes, weirdness=weirdness, onsets=onsets)

    if key is not None:
        try:
            snapshot = analyzer.reselect(snapshot, key)
        except KeyError:
            console.print(f"[red]Error: Unknown key candidate: {key}[/red]")
            raise typer.Exit(1)

    if midi is not None and snapshot.progressions:
        MIDIExporter().export_progression(snapshot.progressions[0], str(midi))

    if json_output:
        console.print_json(data=to_plain(snapshot))
        return

    console.print(f"   {snapshot.raw_note_count} notes in, {len(snapshot.notes)} after consolidation")
    if snapshot.features.is_empty:
        console.print("[yellow]No notes detected![/yellow]")
        return
    console.print(f"   Pitch classes: {snapshot.features.describe()}")

    console.print("\n[cyan]2. Key candidates...[/cyan]")
    _show_keys_table(snapshot.harmony)

    console.print(f"\n[cyan]3. Chords in {snapshot.key.name}...[/cyan]")
    _show_chords_table(snapshot.chords.ranked)

    console.print("\n[cyan]4. Progressions...[/cyan]")
    _show_progressions_table(snapshot.progressions[:8])

    if midi is not None and snapshot.progressions:
        console.print(f"\n   Top progression written to {midi}")
    console.print("\n[green][OK] Analysis complete![/green]")


@app.command()
def onsets(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """List attack times found in an audio file."""
    from .input import AudioLoader
    from .analysis import detect_onsets, get_onset_density

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    loader = AudioLoader()
    audio, sr = loader.load(str(input_file))
    found = detect_onsets(audio, sr)
    duration = loader.get_duration(audio, sr)

    table = Table(title=f"Onsets: {input_file.name}")
    table.add_column("Time (s)", style="green")
    table.add_column("Strength", style="magenta")
    for onset in found:
        table.add_row(f"{onset.time:.3f}", f"{onset.strength:.2f}")
    console.print(table)
    console.print(
        f"  {len(found)} onsets, {get_onset_density(found, 0.0, duration):.2f} per second"
    )


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Show information about an audio file."""
    from .input import AudioLoader
    from .analysis import analyze_levels

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    loader = AudioLoader(normalize=False)
    meta = loader.info(str(input_file))
    audio, sr = loader.load(str(input_file))
    levels = analyze_levels(audio)

    console.print(f"\n[bold]Audio Info:[/bold] {input_file.name}")
    console.print(f"  Duration: {meta['duration']:.2f} seconds")
    console.print(f"  Sample rate: {meta['sample_rate']} Hz (analyzed at {sr} Hz)")
    console.print(f"  Channels: {meta['channels']}")
    console.print(f"  Peak: {levels.peak_db:.1f} dBFS")
    console.print(f"  RMS: {levels.rms_db:.1f} dBFS")
    console.print(f"  Noise floor: {levels.noise_floor_db:.1f} dBFS")
    console.print(f"  Dynamic range: {levels.dynamic_range_db:.1f} dB")
    console.print(f"  Transients: {'yes' if levels.has_transients else 'no'}")


def _show_keys_table(harmony):
    """Display the ranked key candidates."""
    table = Table(title="Key Candidates")
    table.add_column("", style="green")
    table.add_column("Key", style="cyan")
    table.add_column("Score", style="magenta")
    table.add_column("Out of scale", style="yellow")

    for candidate in harmony.top:
        marker = "*" if candidate.id == harmony.selected_id else ""
        outside = ", ".join(PITCH_NAMES[pc] for pc in candidate.out_of_scale)
        table.add_row(marker, candidate.name, f"{candidate.score:.3f}", outside)

    console.print(table)


def _show_chords_table(chords):
    """Display suggested chords in a table."""
    table = Table(title="Suggested Chords")
    table.add_column("Chord", style="cyan")
    table.add_column("Roman", style="green")
    table.add_column("Function", style="yellow")
    table.add_column("Source")
    table.add_column("Support", style="magenta")
    table.add_column("Color", style="magenta")

    for chord in chords:
        table.add_row(
            chord.symbol,
            chord.roman,
            chord.function.value if chord.function else "-",
            chord.source.value,
            f"{chord.support_score:.2f}",
            f"{chord.color_score:.2f}",
        )

    console.print(table)


def _show_progressions_table(progressions: List):
    """Display ranked progressions."""
    table = Table(title="Progressions")
    table.add_column("Chords", style="cyan")
    table.add_column("Roman", style="green")
    table.add_column("Score", style="magenta")
    table.add_column("Flags", style="yellow")

    for prog in progressions:
        flags = [
            name
            for name, on in (
                ("secondary", prog.has_secondary),
                ("borrowed", prog.has_borrowed),
            )
            if on
        ]
        table.add_row(
            " - ".join(prog.symbols),
            " - ".join(prog.romans),
            f"{prog.score:.3f}",
            ", ".join(flags),
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
