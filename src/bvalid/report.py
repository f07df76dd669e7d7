"""Rendering of validation results and validator graphs."""

import json
from collections.abc import Iterator, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .results import ObjectResult, RuleResult
from .validator import Validator


def iter_rule_rows(result: ObjectResult, prefix: str = "") -> Iterator[tuple[str, RuleResult]]:
    """Yield ``(object path, rule result)`` for every rule in the tree, depth first."""
    path = f"{prefix}{result.name}"
    for rule_result in result.rule_results:
        yield path, rule_result
    for member in result.member_results:
        yield from iter_rule_rows(member, f"{path}.")


def _rows(results: Sequence[ObjectResult], failures_only: bool) -> Iterator[tuple[str, RuleResult]]:
    for result in results:
        for path, rule_result in iter_rule_rows(result):
            if failures_only and rule_result.valid:
                continue
            yield path, rule_result


def _count_objects(result: ObjectResult) -> int:
    return 1 + sum(_count_objects(member) for member in result.member_results)


def summarize(results: Sequence[ObjectResult]) -> dict[str, int]:
    """Counters over a list of results: objects validated, rules evaluated, rules failed."""
    return {
        "objects": sum(_count_objects(result) for result in results),
        "tests": sum(result.get_nb_of_tests() for result in results),
        "failures": sum(len(result.get_invalid_rules()) for result in results),
    }


def _rule_label(rule_result: RuleResult, show_descriptions: bool) -> str:
    if show_descriptions or not rule_result.id:
        return str(rule_result)
    outcome = "valid" if rule_result.valid else "invalid"
    return f"[{rule_result.id}] => {outcome}"


def render_text(results: Sequence[ObjectResult], failures_only: bool = False,
                show_descriptions: bool = True) -> str:
    """One line per rule, ``"Person.phones[0] [id] description => valid"``."""
    return "".join(
        f"{path} {_rule_label(rule_result, show_descriptions)}\n"
        for path, rule_result in _rows(results, failures_only)
    )


def render_json(results: Sequence[ObjectResult]) -> str:
    """Render results with their summary as a JSON document."""
    document = {
        "valid": all(result.is_valid() for result in results),
        "summary": summarize(results),
        "results": [result.to_dict() for result in results],
    }
    return json.dumps(document, indent=2)


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def render_markdown(results: Sequence[ObjectResult], failures_only: bool = False,
                    show_descriptions: bool = True) -> str:
    """Render results as a Markdown report with a summary and a rule table."""
    valid = all(result.is_valid() for result in results)
    lines = ["# Validation Report", "", f"**Status:** {'valid' if valid else 'invalid'}", ""]

    lines.append("## Summary")
    for key, value in summarize(results).items():
        lines.append(f"- {key}: {value}")
    lines.append("")

    rows = list(_rows(results, failures_only))
    if rows:
        lines.append("## Rules")
        if show_descriptions:
            lines.append("| Object | Rule | Description | Outcome |")
            lines.append("|---|---|---|---|")
        else:
            lines.append("| Object | Rule | Outcome |")
            lines.append("|---|---|---|")
        for path, rule_result in rows:
            outcome = "valid" if rule_result.valid else "**invalid**"
            cells = [_escape_cell(path), _escape_cell(rule_result.id)]
            if show_descriptions:
                cells.append(_escape_cell(rule_result.description))
            cells.append(outcome)
            lines.append(f"| {' | '.join(cells)} |")
        lines.append("")

    return "\n".join(lines)


class ReportFormatter:
    """Formats validation results and validator graphs for rich console display."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def format_results(self, results: Sequence[ObjectResult], failures_only: bool = False,
                       show_descriptions: bool = True) -> None:
        """Display status, counters and the rule table."""
        valid = all(result.is_valid() for result in results)
        status_color = "green" if valid else "red"
        status_text = "VALID" if valid else "INVALID"
        self.console.print(f"[{status_color}]Validation Status: {status_text}[/{status_color}]")

        self._format_counters(summarize(results))

        rows = list(_rows(results, failures_only))
        if rows:
            self._format_rules(rows, show_descriptions)
        elif failures_only:
            self.console.print("\n[green]No failing rules[/green]")

    def _format_counters(self, counters: dict[str, int]) -> None:
        self.console.print("\n[blue]Counters:[/blue]")
        table = Table(box=box.SIMPLE)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="white", justify="right")
        for key, value in counters.items():
            table.add_row(key.title(), str(value))
        self.console.print(table)

    def _format_rules(self, rows: list[tuple[str, RuleResult]], show_descriptions: bool) -> None:
        table = Table(title="Rules", box=box.ROUNDED)
        table.add_column("Object", style="bold cyan")
        table.add_column("Rule", style="blue")
        if show_descriptions:
            table.add_column("Description", style="white")
        table.add_column("Outcome")

        for path, rule_result in rows:
            outcome = "[green]valid[/green]" if rule_result.valid else "[red]invalid[/red]"
            cells = [escape(path), escape(rule_result.id)]
            if show_descriptions:
                cells.append(escape(rule_result.description))
            cells.append(outcome)
            table.add_row(*cells)

        self.console.print(table)

    def format_validator(self, validator: Validator) -> None:
        """Display the validator graph as a tree."""
        self.console.print(build_validator_tree(validator))


def _validator_label(validator: Validator) -> str:
    return f"[bold]{escape(validator.name)}[/bold] [dim]({validator.type.__qualname__})[/dim]"


def build_validator_tree(validator: Validator) -> Tree:
    """Tree of rules and members; a validator already shown appears as a back reference."""
    tree = Tree(_validator_label(validator))
    _fill_tree(tree, validator, {id(validator)})
    return tree


def _fill_tree(node: Tree, validator: Validator, shown: set[int]) -> None:
    for rule in validator.rules:
        node.add(f"[green]rule[/green] {escape(str(rule))}")
    for member in validator.members:
        member_node = node.add(f"[cyan]member[/cyan] {escape(member.name)}")
        for sub_validator in member.validators.values():
            if id(sub_validator) in shown:
                member_node.add(f"[yellow]-> {escape(sub_validator.name)}[/yellow] [dim](see above)[/dim]")
                continue
            shown.add(id(sub_validator))
            _fill_tree(member_node.add(_validator_label(sub_validator)), sub_validator, shown)
