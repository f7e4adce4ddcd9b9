"""Output formatting for CLI and programmatic use."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .data_store import JSONEncoder

TIER_STYLES = {
    "high": "green",
    "medium": "yellow",
    "low": "red",
    "none": "dim",
}


def _price(value: float | None) -> str:
    return f"£{value:.2f}" if value is not None else "-"


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})

        # Format based on data type
        if "match" in payload:
            self._render_match(data)
        elif "batch" in payload:
            self._render_batch(data)
        elif "dedup" in payload:
            self._render_dedup(data)
        elif "resolved_price" in payload:
            self._render_resolved_price(data)
        elif "variant_price" in payload:
            self._render_variant_price(data)
        elif "lookup" in payload:
            self._render_lookup(data)
        elif "mapping" in payload:
            self._render_mapping(data)
        elif "bracket" in payload:
            self._render_bracket(data)
        elif "size_match" in payload:
            self._render_size_match(data)
        elif "normalized" in payload:
            self._render_normalized(data)

    def _render_match(self, data: dict) -> None:
        """Render a single match result with every scored candidate."""
        match = data["data"]["match"]
        self._render_match_summary(match)

        candidates = match.get("all_candidates", [])
        if not candidates:
            self.console.print("[dim]No candidates to compare against[/dim]")
            return

        table = Table(title="Candidates", show_header=True, header_style="bold cyan")
        table.add_column("Candidate", style="cyan")
        table.add_column("Source", style="blue")
        table.add_column("Score", style="magenta", justify="right")
        table.add_column("Reasons", style="dim")

        for scored in candidates:
            candidate = scored["candidate"]
            table.add_row(
                candidate["name"],
                candidate["source_kind"],
                str(scored["score"]),
                ", ".join(scored.get("reasons", [])) or "-",
            )

        self.console.print(table)

    def _render_match_summary(self, match: dict) -> None:
        tier = match.get("confidence_tier", "none")
        style = TIER_STYLES.get(tier, "white")
        best = match.get("best_match")
        best_name = best["name"] if best else "[dim]no match[/dim]"

        self.console.print(
            Panel(
                f"""[bold]{match["mention"]["name"]}[/bold] -> {best_name}

Score: {match.get("score", 0)}
Confidence: [{style}]{tier}[/{style}]
Reasons: {", ".join(match.get("reasons", [])) or "-"}""",
                title="Match",
                border_style=style,
            )
        )

    def _render_batch(self, data: dict) -> None:
        """Render a batch of matches split by auto-apply eligibility."""
        batch = data["data"]["batch"]

        table = Table(
            title=f"Matches (auto-apply at {batch['auto_match_threshold']}+)",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Mention", style="cyan")
        table.add_column("Best Match", style="green")
        table.add_column("Score", style="magenta", justify="right")
        table.add_column("Confidence")
        table.add_column("Action")

        for match, action in [(m, "[green]auto[/green]") for m in batch["matched"]] + [
            (m, "[yellow]confirm[/yellow]") for m in batch["unmatched"]
        ]:
            tier = match.get("confidence_tier", "none")
            style = TIER_STYLES.get(tier, "white")
            best = match.get("best_match")
            table.add_row(
                match["mention"]["name"],
                best["name"] if best else "-",
                str(match.get("score", 0)),
                f"[{style}]{tier}[/{style}]",
                action,
            )

        self.console.print(table)
        self.console.print(
            f"\nAuto-matched: {len(batch['matched'])}  Needs confirmation: {len(batch['unmatched'])}"
        )

    def _render_dedup(self, data: dict) -> None:
        """Render deduplicated items and merge reports."""
        dedup = data["data"]["dedup"]
        items = dedup["items"]

        if not items:
            self.console.print("[dim]No items[/dim]")
            return

        table = Table(title="Items", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Size", style="blue")
        table.add_column("Category", style="yellow")
        table.add_column("Price", justify="right")

        for item in items:
            table.add_row(
                item["name"],
                f"{item.get('quantity', 1):g}",
                item.get("size") or "-",
                item.get("category") or "-",
                _price(item.get("estimated_price")),
            )

        self.console.print(table)

        duplicates = dedup.get("duplicates", [])
        if duplicates:
            self.console.print(f"\n[bold]Merged duplicates ({len(duplicates)})[/bold]")
            for group in duplicates:
                self.console.print(
                    f"  [cyan]{group['name']}[/cyan] from {', '.join(group['sources'])}"
                    f" (kept {group['kept_from']}: {group['reason']})"
                )

    def _render_resolved_price(self, data: dict) -> None:
        """Render a resolved price with its provenance."""
        resolved = data["data"]["resolved_price"]
        item = data["data"].get("item", "")

        if resolved.get("price") is None:
            self.console.print(f"[dim]No price known for {item}[/dim]")
            return

        content = f"""[bold]{item}[/bold]

Price: {_price(resolved["price"])}
Source: {resolved["source"]}
Confidence: {resolved["confidence"]:.0%}"""

        if resolved.get("store_name"):
            content += f"\nStore: {resolved['store_name']}"
        if resolved.get("report_count"):
            content += f"\nReports: {resolved['report_count']}"

        self.console.print(Panel(content, title="Resolved Price", border_style="green"))

    def _render_variant_price(self, data: dict) -> None:
        """Render the best variant of an item with its price."""
        resolved = data["data"]["variant_price"]
        variant = resolved["variant"]

        content = f"""[bold]{variant["variant_name"]}[/bold]

Size: {variant["size"]} ({variant["unit"]})
Price: {_price(resolved.get("price"))}
Source: {resolved["source"]}
Confidence: {resolved["confidence"]:.0%}"""

        if variant.get("commonality") is not None:
            content += f"\nCommonality: {variant['commonality']:g}"

        self.console.print(Panel(content, title="Best Variant", border_style="green"))

    def _render_mapping(self, data: dict) -> None:
        """Render a learned mapping."""
        mapping = data["data"]["mapping"]

        content = f"""[bold]{mapping["raw_pattern"]}[/bold] -> {mapping["canonical_name"]}

Store: {mapping["store_id"]}
Confirmations: {mapping["confirmation_count"]}
Category: {mapping.get("canonical_category") or "-"}"""

        if mapping.get("typical_price_min") is not None:
            content += (
                f"\nPrice range: {_price(mapping['typical_price_min'])}"
                f" - {_price(mapping.get('typical_price_max'))}"
            )

        self.console.print(Panel(content, title="Learned Mapping", border_style="green"))

    def _render_lookup(self, data: dict) -> None:
        """Render a learned mapping lookup."""
        lookup = data["data"]["lookup"]

        if lookup is None:
            self.console.print("[dim]Nothing learned for this text yet[/dim]")
            return

        kind = "exact" if lookup["exact"] else "partial"
        self.console.print(
            f"[cyan]{lookup['canonical_name']}[/cyan] ({kind}, confidence {lookup['confidence']})"
        )

    def _render_bracket(self, data: dict) -> None:
        """Render a price-bracket variant inference."""
        bracket = data["data"]["bracket"]
        match_type = bracket["match_type"]

        if bracket["matched"]:
            variant = bracket["variant"]
            self.console.print(
                f"[green]{variant['variant_name']}[/green] ({match_type},"
                f" {_price(variant.get('estimated_price'))})"
            )
        elif match_type == "ambiguous":
            names = ", ".join(v["variant_name"] for v in bracket["candidates"])
            self.console.print(f"[yellow]Ambiguous:[/yellow] {names}")
        else:
            self.console.print(
                f"[dim]No variant within {bracket['tolerance']:.0%} of the price[/dim]"
            )

    def _render_size_match(self, data: dict) -> None:
        """Render available sizes ranked against a target size."""
        size_match = data["data"]["size_match"]
        matches = size_match["all_matches"]

        if not matches:
            self.console.print(f"[dim]No comparable size for {size_match['target']}[/dim]")
            return

        table = Table(
            title=f"Closest to {size_match['target']}", show_header=True, header_style="bold cyan"
        )
        table.add_column("Size", style="cyan")
        table.add_column("As", style="dim")
        table.add_column("Diff", justify="right")
        table.add_column("Match")

        for match in matches:
            if match["is_exact"]:
                status = "[green]exact[/green]"
            elif match["is_auto_matchable"]:
                status = "[yellow]auto[/yellow]"
            else:
                status = "[dim]manual[/dim]"
            table.add_row(match["size"], match["display"], f"{match['percent_diff']:.0%}", status)

        self.console.print(table)

    def _render_normalized(self, data: dict) -> None:
        """Render a normalization result."""
        normalized = data["data"]["normalized"]

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Field", style="cyan")
        table.add_column("Value")

        for key, value in normalized.items():
            table.add_row(key, "-" if value is None or value == "" else str(value))

        self.console.print(table)

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
