"""Search and query CLI commands."""

import json

import click
import msgspec
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from discovery.search import (
    MISSING_FACET,
    MetaData,
    QueryError,
    SearchRequest,
    SearchResponse,
    SearchService,
    SortField,
    create_request,
)


def get_search_service(ctx) -> SearchService:
    """Get the search service from context."""
    return ctx.obj.service


def request_options(func):
    """Options shared by every command that builds a search request."""
    options = [
        click.argument("phrase", required=False),
        click.option(
            "--field", "-f", "fields", multiple=True, help="Search field (repeatable)"
        ),
        click.option("--group", "-g", help="Search the fields of a named field group"),
        click.option(
            "--filter",
            "filters",
            multiple=True,
            metavar="EXPR=TAG",
            help="Filter query with the facet tag it belongs to (repeatable)",
        ),
        click.option("--facet", "facets", multiple=True, help="Facet field (repeatable)"),
        click.option("--stat", "stats", multiple=True, help="Stats field (repeatable)"),
        click.option(
            "--sort",
            "-s",
            type=click.Choice([f.value for f in SortField]),
            help="Sort order",
        ),
        click.option("--start", type=int, default=0, help="Skip first N results"),
        click.option("--rows", "-n", type=int, default=10, help="Maximum results"),
        click.option(
            "--operator",
            type=click.Choice(["AND", "OR"], case_sensitive=False),
            default="AND",
            help="Default query operator",
        ),
        click.option("--highlight", is_flag=True, help="Request highlight fragments"),
        click.option("--no-spellcheck", is_flag=True, help="Disable spell correction"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_request(ctx: click.Context, phrase: str | None, **kwargs) -> SearchRequest:
    """Create a search request from command options.

    Raises:
        QueryError: If an option value is invalid
    """
    resolver = get_search_service(ctx).assembler.resolver
    fields = list(kwargs["fields"])
    if kwargs["group"]:
        fields.extend(f for f in resolver.resolve_group(kwargs["group"]) if f not in fields)

    return create_request(
        phrase=phrase,
        search_fields=fields,
        filters=parse_filters(kwargs["filters"]),
        facets=kwargs["facets"],
        stats=kwargs["stats"],
        sort=kwargs["sort"],
        start=kwargs["start"],
        rows=kwargs["rows"],
        operator=kwargs["operator"],
        highlight=kwargs["highlight"],
        spellcheck=not kwargs["no_spellcheck"],
        **kwargs.get("extra", {}),
    )


def parse_filters(values) -> dict[str, str]:
    """Split ``EXPR=TAG`` values; a value without ``=`` is an untagged filter."""
    filters = {}
    for value in values:
        expression, sep, tag = value.rpartition("=")
        if not sep:
            expression, tag = value, ""
        if not expression:
            raise QueryError(f"Empty filter expression: {value}")
        filters[expression] = tag
    return filters


@click.command()
@request_options
@click.option("--json", "as_json", is_flag=True, help="Print the response as JSON")
@click.pass_context
def search(ctx: click.Context, phrase: str | None, as_json: bool, **kwargs) -> None:
    """Run a grouped search.

    PHRASE is free text; quoted parts are searched exactly and may
    contain * and ? wildcards. Without a phrase every group matches.
    """
    console = ctx.obj.console
    service = get_search_service(ctx)
    request = build_request(ctx, phrase, **kwargs)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Searching for '{phrase or '*'}'...", total=None)
        response = service.find_groups(request)

    if as_json:
        click.echo(format_response_json(response))
        return

    _display_groups(console, response, ctx.obj.settings.highlight.tag_name)
    _display_facets(console, response.metadata.facets)
    _display_spell_correction(console, response.metadata)


@click.command()
@request_options
@click.option("--collapse", is_flag=True, help="Collapse results by group")
@click.option("--grouping", is_flag=True, help="Group results")
@click.option("--json", "as_json", is_flag=True, help="Print the parameters as JSON")
@click.pass_context
def params(
    ctx: click.Context,
    phrase: str | None,
    collapse: bool,
    grouping: bool,
    as_json: bool,
    **kwargs,
) -> None:
    """Show the Solr parameters a search is sent with."""
    console = ctx.obj.console
    request = build_request(
        ctx, phrase, extra={"collapse": collapse, "grouping": grouping}, **kwargs
    )
    backend_params = get_search_service(ctx).assemble(request)

    if as_json:
        click.echo(json.dumps(backend_params.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title="Solr parameters", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Value")
    for name, value in backend_params:
        table.add_row(name, value)
    console.print(table)


@click.command()
@click.argument("names", nargs=-1)
@click.pass_context
def fields(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Show the resolved variants of search fields."""
    console = ctx.obj.console
    resolver = get_search_service(ctx).assembler.resolver
    names = names or tuple(resolver.get_canonical_names())

    if not names:
        console.print("[yellow]No fields configured[/yellow]")
        return

    table = Table(title="Search fields", show_header=True, header_style="bold")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Basic")
    table.add_column("Exact")
    table.add_column("Exact (no punctuation)")
    table.add_column("Stemmed")

    for name in names:
        if not resolver.is_valid(name):
            console.print(f"[yellow]Unknown field: {name}[/yellow]")
            suggestions = resolver.suggest_fields(name)
            if suggestions:
                console.print(f"  Did you mean: {', '.join(suggestions)}")
            continue
        table.add_row(
            name,
            resolver.get_basic_name(name) or "-",
            resolver.get_exact_name(name) or "-",
            resolver.get_exact_no_punctuation_name(name) or "-",
            resolver.get_stemmed_name(name) or "-",
        )
    console.print(table)

    for group in resolver.get_group_names():
        console.print(
            f"[dim]{group}:[/dim] {', '.join(resolver.get_field_names_for_group(group))}"
        )


def format_response_json(response: SearchResponse) -> str:
    """Format a search response as JSON."""
    return json.dumps(msgspec.to_builtins(response), indent=2, ensure_ascii=False)


def _display_groups(
    console: Console, response: SearchResponse, tag_name: str = "em"
) -> None:
    """Display object groups as a table."""
    metadata = response.metadata
    if response.is_empty:
        console.print("[yellow]No results found[/yellow]")
        return

    console.print(
        f"\n[bold]Found {metadata.num_found} groups[/bold] "
        f"(showing {metadata.start + 1}-{metadata.start + len(response.payload)})\n"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=4)
    table.add_column("Group", style="cyan")
    table.add_column("Descriptions", justify="right")
    table.add_column("Digitized", justify="right")
    table.add_column("Highlights")

    for i, group in enumerate(response.payload, metadata.start + 1):
        fragments = metadata.highlighting.get(str(group.object.get("id")), {})
        highlight = next((values[0] for values in fragments.values() if values), "")
        table.add_row(
            str(i),
            group.group_id or "-",
            str(len(group.descriptions)),
            str(len(group.digitizeds)),
            escape(highlight)
            .replace(f"<{tag_name}>", "[bold]")
            .replace(f"</{tag_name}>", "[/bold]"),
        )
    console.print(table)


def _display_facets(console: Console, facets: dict[str, dict[str, int]]) -> None:
    """Display facet counts."""
    if not facets:
        return

    console.print("\n[bold]Refine by:[/bold]")
    for field, values in facets.items():
        if values:
            console.print(f"\n  [cyan]{field}:[/cyan]")
            for value, count in list(values.items())[:5]:
                label = "(missing)" if value == MISSING_FACET else value
                console.print(f"    {label} ({count})")


def _display_spell_correction(console: Console, metadata: MetaData) -> None:
    corrected = metadata.spell_corrected_term
    if not corrected:
        return
    label = "Showing results for" if metadata.spell_correction_applied else "Did you mean"
    console.print(f"\n[bold]{label}:[/bold] [cyan]{escape(corrected)}[/cyan]")
