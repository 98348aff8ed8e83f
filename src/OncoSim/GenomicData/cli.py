# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.cli",
#   "purpose": "Typer CLI for preparing resource stores and querying germline catalogs",
#   "sections": [
#     {"id": "context", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "store-commands", "name": "setup / codes", "anchor": "STO", "kind": "api"},
#     {"id": "catalog-commands", "name": "Catalog queries", "anchor": "CAT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Command line entry point ``genomic-data``.

Example:
    $ genomic-data setup --setup-code demo
    $ genomic-data --log-level DEBUG subject ~/.data/oncosim-genomic-data/demo/germline_data NA12878
"""

from pathlib import Path
from typing import Iterable, NoReturn, Optional, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from OncoSim.GenomicData import __version__
from OncoSim.GenomicData.catalog import GermlineSubject, PopulationCatalog
from OncoSim.GenomicData.chromosomes import chromosome_name
from OncoSim.GenomicData.errors import ConfigError, GenomicDataError
from OncoSim.GenomicData.logging_utils import setup_logging
from OncoSim.GenomicData.settings import Credential, get_default_config
from OncoSim.GenomicData.setups import available_setup_codes, get_setup
from OncoSim.GenomicData.store import ResourceStore

_console = Console()
_err_console = Console(stderr=True)

app = typer.Typer(
    name="genomic-data",
    help="Prepare genomic resource directories and query germline catalogs",
    no_args_is_help=True,
)


class CliContext:
    """Shared state for one invocation: settings and console."""

    def __init__(self, log_level: Optional[str], log_dir: Optional[Path]) -> None:
        self.settings = get_default_config(copy=True)
        if log_level is not None:
            self.settings.logging.level = log_level
        if log_dir is not None:
            self.settings.logging.log_dir = log_dir
        self.console = _console
        setup_logging(
            level=self.settings.logging.level,
            retention_days=self.settings.logging.retention_days,
            max_log_size_mb=self.settings.logging.max_log_size_mb,
            log_dir=self.settings.logging.log_dir,
        )


_context: Optional[CliContext] = None


def get_context() -> CliContext:
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _fail(error: Exception) -> NoReturn:
    _err_console.print(f"[red]Error: {escape(str(error))}[/red]", soft_wrap=True)
    raise typer.Exit(1)


def _subjects_table(subjects: Iterable[GermlineSubject], title: str) -> Table:
    table = Table(title=title)
    for column in ("sample", "pop", "super_pop", "gender"):
        table.add_column(column, style="cyan" if column == "sample" else None)
    for subject in subjects:
        row = subject.as_dict()
        table.add_row(row["sample"], row["pop"], row["super_pop"], row["gender"])
    return table


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Directory for the rotating JSON log file",
    ),
    version: bool = typer.Option(False, "--version", "-V", help="Show version and exit"),
) -> None:
    """Genomic resource store and germline catalog tools."""

    global _context

    if version:
        typer.echo(f"genomic-data {__version__}")
        raise typer.Exit(0)
    try:
        _context = CliContext(log_level, log_dir)
    except ValueError as exc:
        # pydantic rejects unknown logging levels on assignment
        _fail(exc)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
def setup(
    directory: Optional[Path] = typer.Option(
        None, "--directory", "-d", help="Managed directory (defaults below the data directory)"
    ),
    setup_code: Optional[str] = typer.Option(
        None, "--setup-code", help="Preset source bundle; explicit sources override its entries"
    ),
    reference: Optional[str] = typer.Option(None, "--reference", help="Reference genome source"),
    sbs_signatures: Optional[str] = typer.Option(None, "--sbs-signatures", help="SBS signatures source"),
    indel_signatures: Optional[str] = typer.Option(
        None, "--indel-signatures", help="Indel signatures source"
    ),
    drivers: Optional[str] = typer.Option(None, "--drivers", help="Driver mutations source"),
    passenger_cnas: Optional[str] = typer.Option(None, "--passenger-cnas", help="Passenger CNAs source"),
    germline: Optional[str] = typer.Option(None, "--germline", help="Germline data source"),
    username: Optional[str] = typer.Option(
        None, "--username", help="Signature portal account (or GENOMICDATA_COSMIC_USERNAME)"
    ),
    password: Optional[str] = typer.Option(
        None, "--password", help="Signature portal password (or GENOMICDATA_COSMIC_PASSWORD)"
    ),
) -> None:
    """Make every configured resource available locally and record its sources."""

    ctx = get_context()
    explicit = {
        "reference_source": reference,
        "sbs_signatures_source": sbs_signatures,
        "indel_signatures_source": indel_signatures,
        "drivers_source": drivers,
        "passenger_cnas_source": passenger_cnas,
        "germline_source": germline,
    }
    overrides = {name: value for name, value in explicit.items() if value is not None}

    if username and password:
        credential: Optional[Credential] = Credential(username=username, password=password)
    else:
        credential = Credential.from_environment()

    try:
        if setup_code is not None:
            store = ResourceStore.from_setup(
                setup_code,
                directory=directory,
                credential=credential,
                settings=ctx.settings,
                **overrides,
            )
        else:
            missing = sorted(name for name, value in explicit.items() if value is None)
            if missing or directory is None:
                raise ConfigError(
                    "Without --setup-code, --directory and every source option are required"
                    + (f" (missing: {', '.join(missing)})" if missing else "")
                )
            store = ResourceStore(directory, credential=credential, settings=ctx.settings, **overrides)
        store.save_sources()
    except GenomicDataError as exc:
        _fail(exc)

    table = Table(title=f"Resource store {store.directory}")
    table.add_column("Resource", style="cyan")
    table.add_column("Source")
    table.add_column("Path", style="green")
    for kind, source in store.sources.items():
        table.add_row(kind.label, source, str(store.effective_path(kind)))
    ctx.console.print(table)


@app.command()
def codes() -> None:
    """List the packaged set-up codes."""

    ctx = get_context()
    try:
        available = available_setup_codes()
    except GenomicDataError as exc:
        _fail(exc)
    table = Table(title="Set-up codes")
    table.add_column("Code", style="cyan")
    table.add_column("Directory")
    table.add_column("Description")
    for code in available:
        entry = get_setup(code)
        table.add_row(code, entry.directory, entry.description)
    ctx.console.print(table)


def _open_catalog(directory: Path) -> PopulationCatalog:
    try:
        return PopulationCatalog(directory)
    except GenomicDataError as exc:
        _fail(exc)


@app.command()
def population(directory: Path = typer.Argument(..., help="Germline data directory")) -> None:
    """List the subjects of a germline catalog."""

    ctx = get_context()
    catalog = _open_catalog(directory)
    try:
        subjects: Sequence[GermlineSubject] = catalog.list_population()
    except GenomicDataError as exc:
        _fail(exc)
    ctx.console.print(_subjects_table(subjects, f"Population ({len(subjects)} subjects)"))


@app.command()
def descriptions(directory: Path = typer.Argument(..., help="Germline data directory")) -> None:
    """Show the population code descriptions."""

    ctx = get_context()
    catalog = _open_catalog(directory)
    try:
        rows = catalog.population_descriptions()
    except GenomicDataError as exc:
        _fail(exc)
    table = Table(title="Populations")
    table.add_column("Code", style="cyan")
    table.add_column("Description")
    extra_columns = list(rows[0].extra) if rows else []
    for name in extra_columns:
        table.add_column(name)
    for row in rows:
        table.add_row(row.code, row.description, *(row.extra.get(name, "") for name in extra_columns))
    ctx.console.print(table)


@app.command()
def subject(
    directory: Path = typer.Argument(..., help="Germline data directory"),
    name: str = typer.Argument(..., help="Subject (sample) name"),
) -> None:
    """Show one subject of a germline catalog."""

    ctx = get_context()
    catalog = _open_catalog(directory)
    try:
        found = catalog.subject(name)
    except GenomicDataError as exc:
        _fail(exc)
    ctx.console.print(_subjects_table([found], f"Subject {name}"))


@app.command()
def alleles(
    directory: Path = typer.Argument(..., help="Germline data directory"),
    gender: str = typer.Argument(..., help="Gender column of the allele table"),
) -> None:
    """Show the number of alleles per chromosome for a gender."""

    ctx = get_context()
    catalog = _open_catalog(directory)
    try:
        counts = catalog.alleles_per_chromosome(gender)
    except GenomicDataError as exc:
        _fail(exc)
    table = Table(title=f"Alleles per chromosome ({gender})")
    table.add_column("Chromosome", style="cyan")
    table.add_column("Alleles", justify="right")
    for chromosome, count in sorted(counts.items()):
        table.add_row(chromosome_name(chromosome), str(count))
    ctx.console.print(table)


@app.command("germline")
def germline_cmd(
    directory: Path = typer.Argument(..., help="Germline data directory"),
    name: str = typer.Argument(..., help="Subject (sample) name"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide progress bars"),
) -> None:
    """Build (or load the cached) germline genotype of a subject and summarise it."""

    ctx = get_context()
    catalog = _open_catalog(directory)
    try:
        genotype = catalog.germline(name, quiet=quiet)
    except GenomicDataError as exc:
        _fail(exc)
    table = Table(title=f"Germline genotype of {name} ({genotype.num_of_variants()} variants)")
    table.add_column("Chromosome", style="cyan")
    table.add_column("Alleles", justify="right")
    table.add_column("Variants per allele", justify="right")
    for chromosome in sorted(genotype.chromosomes):
        per_allele = ", ".join(
            str(len(genotype.allele(chromosome, index)))
            for index in range(genotype.num_of_alleles(chromosome))
        )
        table.add_row(chromosome_name(chromosome), str(genotype.num_of_alleles(chromosome)), per_allele)
    ctx.console.print(table)
    ctx.console.print(f"[dim]cache: {catalog.cache_path(name)}[/dim]")


if __name__ == "__main__":
    app()
