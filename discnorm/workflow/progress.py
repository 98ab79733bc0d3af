"""
Progress tracking for compress, verify and rename runs.

Provides simple console output, one line per disc, and a closing summary.
"""

import time
from typing import List, Optional
from dataclasses import dataclass, field


@dataclass
class ItemProgress:
    """Outcome for a single disc or CHD."""
    name: str
    status: str  # 'success', 'failed', 'skipped'
    detail: str = ""


@dataclass
class RunProgress:
    """Counters for one command run."""
    command: str
    total: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    start_time: float = field(default_factory=time.time)
    items: List[ItemProgress] = field(default_factory=list)


class ProgressTracker:
    """Prints per-item status lines and a summary for a run."""

    SYMBOLS = {'success': "✓", 'failed': "✗", 'skipped': "○"}

    def __init__(self):
        self.run: Optional[RunProgress] = None

    def start_run(self, command: str, total: int) -> None:
        self.run = RunProgress(command=command, total=total)

        print(f"\n{'='*60}")
        print(f"{command.capitalize()}: {total} item(s)")
        print(f"{'='*60}\n")

    def log_item(self, name: str, status: str, detail: str = "") -> None:
        """
        Record and print one item's outcome.

        Args:
            name: Disc or file name
            status: 'success', 'failed' or 'skipped'
            detail: Extra message shown after the name
        """
        if not self.run:
            return

        self.run.processed += 1
        if status == 'success':
            self.run.succeeded += 1
        elif status == 'failed':
            self.run.failed += 1
        elif status == 'skipped':
            self.run.skipped += 1

        message = f"  {self.SYMBOLS.get(status, '?')} [{self.run.processed}/{self.run.total}] {name}"
        if detail:
            message += f" - {detail}"
        print(message)

        self.run.items.append(ItemProgress(name=name, status=status, detail=detail))

    def finish_run(self) -> Optional[RunProgress]:
        """Print the summary and return the finished counters."""
        run = self.run
        if not run:
            return None

        elapsed = time.time() - run.start_time
        minutes = int(elapsed // 60)
        seconds = int(elapsed % 60)

        print(f"\n{'-'*60}")
        print(f"{run.command.capitalize()} complete")
        print(f"  Total:     {run.total}")
        print(f"  Succeeded: {run.succeeded}")
        print(f"  Failed:    {run.failed}")
        print(f"  Skipped:   {run.skipped}")
        print(f"  Time:      {minutes}m {seconds}s")
        print(f"{'-'*60}\n")

        self.run = None
        return run


class ErrorLogger:
    """Collects per-item failures for a written summary."""

    def __init__(self):
        self.errors: List[tuple] = []

    def log_error(self, name: str, message: str) -> None:
        self.errors.append((name, message))

    def write_summary(self, output_path: str) -> None:
        """Write collected errors to output_path (nothing when empty)."""
        if not self.errors:
            return

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(f"Errors ({len(self.errors)} total)\n")
            f.write("="*60 + "\n\n")
            for name, message in self.errors:
                f.write(f"Item: {name}\n")
                f.write(f"Error: {message}\n")
                f.write("-"*60 + "\n")

        print(f"Error log written to: {output_path}")

    def has_errors(self) -> bool:
        return len(self.errors) > 0
