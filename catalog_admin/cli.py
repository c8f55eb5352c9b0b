# catalog_admin/cli.py
import asyncio
import locale
import logging
import sys
from datetime import datetime
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.styles import Style as PromptStyle
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Settings, get_settings
from .display import DisplayModel, NO_DESCRIPTION, NO_IMAGE, project
from .errors import EmptyExportError, NetworkError, ValidationError
from .models import CATEGORIES, Product, ProductForm, SortKey, SortOrder
from .refresher import AutoRefresher
from .sdk import CatalogClient
from .viewmodel import (
    ErrorDismissed,
    PageRequested,
    PageSizeChanged,
    PageStepped,
    ProductListViewModel,
    SearchChanged,
    SearchCleared,
    SortToggled,
)

console = Console()

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

COMMANDS = [
    ("search <text>", "Filter products by title"),
    ("clear", "Clear the search"),
    ("sort title|price|none", "Sort by column (repeat to flip direction)"),
    ("size <n>", "Rows per page"),
    ("page <n>", "Go to page"),
    ("next / prev", "Next / previous page"),
    ("show <id>", "Product details"),
    ("edit <id>", "Edit title, price, description"),
    ("new", "Create a product"),
    ("export", "Export the current view to CSV"),
    ("refresh", "Reload the catalog now"),
    ("stats", "Catalog statistics"),
    ("dismiss", "Hide the error banner"),
    ("help", "Show this list"),
    ("quit", "Exit"),
]

COMMAND_WORDS = [
    "search", "clear", "sort", "size", "page", "next", "prev", "show", "edit",
    "new", "export", "refresh", "stats", "dismiss", "help", "quit", "title", "price", "none",
]


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


# ---------------------------
# Display helpers
# ---------------------------
def _sort_marker(model: DisplayModel, key: SortKey) -> str:
    if model.sort_key is not key:
        return " ↕"
    return " ▲" if model.sort_order is SortOrder.ASC else " ▼"


def render_table(model: DisplayModel) -> Table:
    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True,
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Title" + _sort_marker(model, SortKey.TITLE), style="bold", width=30)
    table.add_column("Price" + _sort_marker(model, SortKey.PRICE), justify="right", width=10)
    table.add_column("Category", width=15)
    table.add_column("Description", width=40, overflow="ellipsis", no_wrap=True)

    for row in model.rows:
        table.add_row(*(escape(cell) for cell in (row.id, row.title, row.price, row.category, row.description)))
    return table


def render_stats(model: DisplayModel) -> Panel:
    grid = Table.grid(padding=(0, 4))
    grid.add_row(
        f"[bold]Products:[/bold] {model.stats_total}",
        f"[bold]Categories:[/bold] {model.stats_categories}",
        f"[bold]Average price:[/bold] [green]{model.stats_average_price}[/green]",
    )
    return Panel(grid, title="📊 Stats", border_style="blue")


def render_pagination(model: DisplayModel) -> Text:
    text = Text()
    text.append(f"Showing {model.record_start}-{model.record_end} of {model.total_count}  ", style="dim")
    if not model.show_pagination:
        return text
    for link in model.page_links:
        if link is None:
            text.append(" … ", style="dim")
        elif link == model.page_index:
            text.append(f" [{link}] ", style="bold reverse cyan")
        else:
            text.append(f" {link} ", style="cyan")
    return text


def render_banner(model: DisplayModel) -> Optional[Panel]:
    if not model.error:
        return None
    return Panel.fit(f"[red]{escape(model.error)}[/red]\n[dim]type 'dismiss' to hide[/dim]", title="❌ Error", border_style="red")


def show_view(vm: ProductListViewModel) -> None:
    model = project(vm)
    banner = render_banner(model)
    if banner is not None:
        console.print(banner)
    if model.result_count is not None:
        console.print(f"[yellow]{model.result_count} result(s) for '{escape(model.search_query)}'[/yellow]")
    if not model.rows:
        console.print("[italic yellow]No products found[/italic yellow]")
    else:
        console.print(render_table(model))
    console.print(render_pagination(model))
    if model.last_updated:
        console.print(f"[dim]Last updated: {model.last_updated}[/dim]")


def show_product(product: Product) -> None:
    body = Table.grid(padding=(0, 2))
    body.add_column(style="bold cyan")
    body.add_column()
    body.add_row("ID", str(product.id))
    body.add_row("Title", escape(product.title))
    body.add_row("Price", f"${product.price:.2f}")
    body.add_row("Category", escape(product.category_name or "N/A"))
    body.add_row("Image", escape(product.first_image or NO_IMAGE))
    body.add_row("Description", escape(product.description or NO_DESCRIPTION))
    console.print(Panel(body, title=f"ℹ️ {escape(product.title)}", border_style="cyan"))


def show_status(message: str, is_success: bool = True) -> Panel:
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{escape(message)}[/{style}]", title="Status")


def show_help() -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for usage, text in COMMANDS:
        table.add_row(usage, text)
    console.print(Panel(table, title="📋 Commands", border_style="yellow"))


def create_header(settings: Settings) -> Panel:
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Catalog Admin",
        f"[bold blue]{escape(settings.api_base_url)}[/bold blue]",
        f"[dim]{now}[/dim]",
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Shell
# ---------------------------
class AdminShell:
    def __init__(self, vm: ProductListViewModel, refresher: AutoRefresher, session: Optional[PromptSession] = None):
        self.vm = vm
        self.refresher = refresher
        self.session = session or PromptSession(style=custom_style)

    async def ask(self, message: str, default: str = "", completer=None) -> str:
        return await self.session.prompt_async(f"{message} ", default=default, completer=completer)

    async def ask_form(self, product: Optional[Product] = None) -> ProductForm:
        title = await self.ask("Title:", default=product.title if product else "")
        price = await self.ask("Price:", default=str(product.price) if product else "")
        description = await self.ask("Description:", default=(product.description or "") if product else "")
        if product is not None:
            return ProductForm(title=title, price=price, description=description)

        choices = ", ".join(f"{cid}={name}" for cid, name in CATEGORIES.items())
        raw = await self.ask(f"Category ({choices}):", completer=WordCompleter([str(c) for c in CATEGORIES]))
        category_id = int(raw) if raw.strip().isdigit() else None
        return ProductForm(title=title, price=price, description=description, category_id=category_id)

    def _parse_id(self, args: List[str]) -> Optional[int]:
        if len(args) != 1 or not args[0].lstrip("-").isdigit():
            console.print(show_status("Expected a numeric product id", False))
            return None
        return int(args[0])

    async def handle(self, line: str) -> bool:
        """Run one command line; returns False when the user wants to leave."""
        parts = line.strip().split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]

        if cmd == "search":
            self.vm.dispatch(SearchChanged(query=" ".join(args)))
            show_view(self.vm)

        elif cmd == "clear":
            self.vm.dispatch(SearchCleared())
            show_view(self.vm)

        elif cmd == "sort":
            try:
                key = SortKey(args[0].lower()) if args else SortKey.NONE
            except ValueError:
                console.print(show_status("Sort by title, price or none", False))
                return True
            self.vm.dispatch(SortToggled(key=key))
            show_view(self.vm)

        elif cmd == "size":
            try:
                self.vm.dispatch(PageSizeChanged(size=int(args[0])))
            except (IndexError, ValueError):
                console.print(show_status(f"Page size must be one of {self.vm.page_size_choices}", False))
                return True
            show_view(self.vm)

        elif cmd == "page":
            if not args or not args[0].isdigit():
                console.print(show_status("Usage: page <n>", False))
                return True
            self.vm.dispatch(PageRequested(page=int(args[0])))
            show_view(self.vm)

        elif cmd in ("next", "prev"):
            self.vm.dispatch(PageStepped(delta=1 if cmd == "next" else -1))
            show_view(self.vm)

        elif cmd == "show":
            product_id = self._parse_id(args)
            if product_id is None:
                return True
            try:
                show_product(self.vm.get_product(product_id))
            except KeyError:
                console.print(show_status(f"No product with id {product_id}", False))

        elif cmd == "edit":
            await self.edit(args)

        elif cmd == "new":
            await self.create()

        elif cmd == "export":
            await self.export()

        elif cmd == "refresh":
            if await self.vm.refresh():
                console.print(show_status(f"Loaded {len(self.vm.products)} products", True))
            show_view(self.vm)

        elif cmd == "stats":
            console.print(render_stats(project(self.vm)))

        elif cmd == "dismiss":
            self.vm.dispatch(ErrorDismissed())

        elif cmd == "help":
            show_help()

        elif cmd in ("q", "quit", "exit"):
            return False

        else:
            console.print(show_status(f"Unknown command '{cmd}' (type 'help')", False))

        return True

    async def edit(self, args: List[str]) -> None:
        product_id = self._parse_id(args)
        if product_id is None:
            return
        try:
            product = self.vm.get_product(product_id)
        except KeyError:
            console.print(show_status(f"No product with id {product_id}", False))
            return

        show_product(product)
        form = await self.ask_form(product)
        try:
            updated = await self.vm.update_product(product_id, form)
        except ValidationError as e:
            console.print(f"[red]  ✗ {escape(e.message)}[/red]")
            return
        except NetworkError:
            show_view(self.vm)
            return
        except KeyError:
            console.print(show_status(f"Product {product_id} is no longer in the catalog", False))
            return

        if updated is None:
            console.print(show_status(f"Product {product_id} was removed by a refresh; update not applied", False))
            return
        console.print(show_status("Product updated successfully!", True))
        show_product(updated)

    async def create(self) -> None:
        form = await self.ask_form()
        try:
            created = await self.vm.create_product(form)
        except ValidationError as e:
            console.print(f"[red]  ✗ {escape(e.message)}[/red]")
            return
        except NetworkError:
            show_view(self.vm)
            return
        console.print(show_status(f"Product '{created.title}' created (id {created.id})", True))
        show_view(self.vm)

    async def export(self) -> None:
        try:
            path = self.vm.export()
        except EmptyExportError as e:
            console.print(Panel.fit(f"[yellow]{escape(str(e))}[/yellow]", title="⚠️ Export", border_style="yellow"))
            await self.ask("Press Enter to continue")
            return
        console.print(show_status(f"Exported {len(self.vm.displayed_products())} products to {path}", True))

    async def run(self, settings: Settings) -> None:
        console.print(create_header(settings))
        self.refresher.start()
        await self.refresher.wait_idle()
        show_view(self.vm)
        show_help()

        completer = WordCompleter(COMMAND_WORDS, ignore_case=True)
        try:
            with patch_stdout():
                while True:
                    try:
                        line = await self.session.prompt_async("\ncatalog> ", completer=completer)
                    except KeyboardInterrupt:
                        continue
                    except EOFError:
                        break
                    if not await self.handle(line):
                        break
        finally:
            self.refresher.stop()


def _on_catalog_change(vm: ProductListViewModel) -> None:
    if vm.last_updated:
        console.print(f"[dim]Catalog: {len(vm.products)} products (updated {vm.last_updated:%H:%M:%S})[/dim]")


async def run_admin(settings: Settings) -> None:
    client = CatalogClient(base_url=settings.api_base_url, timeout=settings.request_timeout)
    vm = ProductListViewModel(
        client,
        page_size=settings.page_size,
        page_size_choices=settings.page_size_choices,
        export_dir=settings.export_dir,
    )
    vm.subscribe(_on_catalog_change)
    refresher = AutoRefresher(vm, interval=settings.refresh_interval)
    shell = AdminShell(vm, refresher)
    await shell.run(settings)


def use_system_collation() -> None:
    """Collate titles by the user's locale, as a browser's localeCompare would."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logging.getLogger(__name__).warning("Falling back to C collation: %s", e)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    use_system_collation()
    try:
        asyncio.run(run_admin(settings))
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    console.print(Panel.fit("[bold green]Goodbye 👋[/bold green]", title="Catalog Admin"))


if __name__ == "__main__":
    main()
