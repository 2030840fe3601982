"""
CLI entry point: zerodha list-orders | close-stop-loss-orders | close-all-positions | login.

Every command resolves credentials (option > environment), establishes a
Kite session (supplied access token or interactive login), prints what it
found as a table and, for the mutating commands, asks before acting.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Callable, Iterator, NoReturn

import click
from rich.console import Console
from dotenv import load_dotenv

from broker import (
    AuthenticationError,
    BrokerClient,
    KiteError,
    Session,
    TokenStore,
    establish_session,
    is_token_error,
    mask_token,
    renew_session,
)
from config import AppConfig, ConfigError, Credentials, CredentialsError, load_config, resolve_credentials
from trading_ops import (
    BatchPolicy,
    BatchResult,
    ItemResult,
    ItemStatus,
    PriceFetchError,
    cancel_orders,
    close_positions,
    open_positions,
    parse_net_positions,
    parse_orders,
    stop_loss_orders,
)

load_dotenv()

logger = logging.getLogger("zerodha")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _default_client_factory(cfg: AppConfig, api_key: str) -> BrokerClient:
    from broker import get_kite_client

    return get_kite_client(
        api_key,
        base_url=cfg.kite.base_url,
        login_url=cfg.kite.login_url,
        timeout_sec=cfg.kite.timeout_sec,
    )


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config file (default: zerodha.yaml if present).")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """zerodha: list orders, cancel stop-loss orders and flatten positions via Kite Connect."""
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)
    _setup_logging("DEBUG" if verbose else cfg.logging.level)
    ctx.obj["config"] = cfg
    ctx.obj.setdefault("client_factory", _default_client_factory)


# ---------- shared helpers ----------


def credential_options(f: Callable) -> Callable:
    """--api-key / --api-secret / --access-token / --show-token."""
    f = click.option("--show-token", is_flag=True, default=False, help="Print a newly issued access token in full instead of masked.")(f)
    f = click.option("--access-token", default=None, help="Zerodha access token (optional; env ZERODHA_ACCESS_TOKEN).")(f)
    f = click.option("--api-secret", default=None, help="Zerodha API secret (env ZERODHA_API_SECRET).")(f)
    f = click.option("--api-key", default=None, help="Zerodha API key (env ZERODHA_API_KEY).")(f)
    return f


def batch_options(f: Callable) -> Callable:
    """--no-confirm / --dry-run / --stop-on-error."""
    f = click.option("--stop-on-error", is_flag=True, default=False, help="Skip remaining items after the first failure (exit 1).")(f)
    f = click.option("--dry-run", is_flag=True, default=False, help="Show the requests that would be sent; change nothing.")(f)
    f = click.option("--no-confirm", is_flag=True, default=False, help="Skip confirmation before acting.")(f)
    return f


def _fail(message: str) -> NoReturn:
    click.secho(f"Error: {message}", fg="red", err=True)
    raise SystemExit(1)


@contextmanager
def _fatal_errors(events=None) -> Iterator[None]:
    """Turn any uncaught error into ``Error: ...`` and exit code 1."""
    try:
        yield
    except (click.Abort, click.ClickException):
        raise
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        if events is not None:
            events.error(type(exc).__name__, str(exc))
        _fail(str(exc))


def _events(ctx: click.Context, command: str):
    from cli.structured_log import StructuredEventLogger

    cfg: AppConfig = ctx.obj["config"]
    return StructuredEventLogger(
        command,
        enabled=cfg.logging.structured_logs,
        webhook_url=cfg.logging.webhook_url,
    )


def _token_store(cfg: AppConfig) -> TokenStore | None:
    return TokenStore(cfg.auth.token_cache) if cfg.auth.token_cache else None


def _ask_request_token(text: str) -> str:
    return click.prompt(text, default="", show_default=False)


def _report_token(ctx: click.Context, token: str, show_token: bool, label: str) -> None:
    click.secho(f"{label} {token if show_token else mask_token(token)}", fg="green")
    store = _token_store(ctx.obj["config"])
    if store is not None:
        store.save(token)
        click.echo(f"Access token saved to {store.path}")


def _resolve(ctx: click.Context, **options: str | None) -> Credentials:
    store = _token_store(ctx.obj["config"])
    try:
        return resolve_credentials(
            **options,
            cached_access_token=store.load() if store is not None else None,
        )
    except CredentialsError as e:
        click.secho(str(e), fg="red", err=True)
        click.echo("You can either pass them as command options or set them in your .env file")
        raise SystemExit(1)


def _open_session(ctx: click.Context, creds: Credentials, show_token: bool) -> tuple[BrokerClient, Session]:
    cfg: AppConfig = ctx.obj["config"]
    client = ctx.obj["client_factory"](cfg, creds.api_key)
    try:
        session = establish_session(client, creds, echo=click.echo, ask=_ask_request_token)
    except AuthenticationError as e:
        _fail(str(e))
    if session.obtained:
        _report_token(ctx, session.access_token, show_token, "Successfully obtained access token!")
    return client, session


def _policy(cfg: AppConfig, stop_on_error: bool) -> BatchPolicy:
    return BatchPolicy.STOP_ON_ERROR if stop_on_error else BatchPolicy(cfg.batch.policy)


def _confirm(question: str, no_confirm: bool) -> bool:
    if no_confirm:
        return True
    return click.confirm(question, default=False)


def _echo_result(line: str, result: ItemResult) -> None:
    if result.status == ItemStatus.FAILED:
        click.secho(line, fg="red", err=True)
    elif result.status == ItemStatus.SKIPPED:
        click.secho(line, fg="yellow")
    else:
        click.secho(line, fg="green")


def _finish(result: BatchResult, events, noun: str, dry_run: bool) -> None:
    from cli.output import format_summary

    events.batch_complete(len(result.succeeded), len(result.failed), len(result.skipped))
    if not dry_run:
        click.echo(format_summary(len(result.succeeded), len(result.failed), len(result.skipped), noun=noun))
    if result.aborted:
        events.batch_aborted(len(result.skipped))
        _fail(f"Stopped after first failure; {len(result.skipped)} {noun} skipped")


# ---------- zerodha list-orders ----------


@cli.command("list-orders")
@credential_options
@click.option("--refresh-token", default=None, help="Refresh token used to renew an expired session (env ZERODHA_REFRESH_TOKEN).")
@click.pass_context
def list_orders(
    ctx: click.Context,
    api_key: str | None,
    api_secret: str | None,
    access_token: str | None,
    show_token: bool,
    refresh_token: str | None,
) -> None:
    """List orders from the Zerodha trading account.

    If the access token has expired, the session is renewed once (with the
    refresh token, or the access token itself) and the listing retried.
    """
    from cli.output import orders_table

    creds = _resolve(
        ctx,
        api_key=api_key,
        api_secret=api_secret,
        access_token=access_token,
        refresh_token=refresh_token,
    )
    with _fatal_errors():
        client, session = _open_session(ctx, creds, show_token)
        try:
            raw = client.orders()
        except KiteError as exc:
            if not is_token_error(exc):
                raise
            click.secho("Access token expired. Attempting to renew...", fg="yellow")
            session = renew_session(client, creds, session.access_token)
            _report_token(ctx, session.access_token, show_token, "New access token:")
            raw = client.orders()

        orders = parse_orders(raw)
        if not orders:
            click.echo("No orders found")
            return
        Console().print(orders_table(orders))


# ---------- zerodha close-stop-loss-orders ----------


@cli.command("close-stop-loss-orders")
@credential_options
@batch_options
@click.pass_context
def close_stop_loss_orders(
    ctx: click.Context,
    api_key: str | None,
    api_secret: str | None,
    access_token: str | None,
    show_token: bool,
    no_confirm: bool,
    dry_run: bool,
    stop_on_error: bool,
) -> None:
    """Cancel pending stop-loss (SL, SL-M) orders."""
    from cli.output import format_cancel_result, orders_table

    cfg: AppConfig = ctx.obj["config"]
    events = _events(ctx, "close-stop-loss-orders")
    creds = _resolve(ctx, api_key=api_key, api_secret=api_secret, access_token=access_token)

    def on_result(r: ItemResult) -> None:
        _echo_result(format_cancel_result(r), r)
        if r.status == ItemStatus.DONE:
            events.order_cancelled(r.item.order_id, r.item.symbol)
        elif r.status == ItemStatus.FAILED:
            events.item_failed(r.item.order_id, r.error or "")

    with _fatal_errors(events):
        client, _ = _open_session(ctx, creds, show_token)
        orders = stop_loss_orders(parse_orders(client.orders()))
        if not orders:
            click.echo("No pending stop loss orders found")
            return

        Console().print(orders_table(orders))
        if not _confirm("Do you want to close these stop loss orders?", no_confirm):
            click.echo("Operation cancelled")
            return

        events.batch_start(len(orders), dry_run)
        result = cancel_orders(
            client,
            orders,
            policy=_policy(cfg, stop_on_error),
            dry_run=dry_run,
            on_result=on_result,
        )
    _finish(result, events, "orders", dry_run)


# ---------- zerodha close-all-positions ----------


@cli.command("close-all-positions")
@credential_options
@batch_options
@click.option("--use-limit-order", is_flag=True, default=False, help="Exit with limit orders at the last traded price instead of market orders.")
@click.pass_context
def close_all_positions(
    ctx: click.Context,
    api_key: str | None,
    api_secret: str | None,
    access_token: str | None,
    show_token: bool,
    no_confirm: bool,
    dry_run: bool,
    stop_on_error: bool,
    use_limit_order: bool,
) -> None:
    """Close every open net position with an offsetting order.

    With --use-limit-order all last traded prices are fetched in one call
    first; if that call fails nothing is placed.
    """
    from cli.output import format_close_result, format_prices, positions_table

    cfg: AppConfig = ctx.obj["config"]
    events = _events(ctx, "close-all-positions")
    creds = _resolve(ctx, api_key=api_key, api_secret=api_secret, access_token=access_token)

    def on_result(r: ItemResult) -> None:
        _echo_result(format_close_result(r), r)
        if r.status == ItemStatus.DONE:
            events.exit_order_placed(r.item.symbol, r.item.exchange, abs(r.item.quantity), r.order_id)
        elif r.status == ItemStatus.FAILED:
            events.item_failed(r.item.instrument_key, r.error or "")

    with _fatal_errors(events):
        client, _ = _open_session(ctx, creds, show_token)
        positions = open_positions(parse_net_positions(client.positions()))
        if not positions:
            click.echo("No open positions found")
            return

        Console().print(positions_table(positions))
        if not _confirm("Do you want to close all positions?", no_confirm):
            click.echo("Operation cancelled")
            return

        events.batch_start(len(positions), dry_run)
        try:
            result = close_positions(
                client,
                positions,
                use_limit_order=use_limit_order,
                variety=cfg.orders.variety,
                validity=cfg.orders.validity,
                policy=_policy(cfg, stop_on_error),
                dry_run=dry_run,
                on_prices=lambda prices: click.echo(format_prices(prices)),
                on_result=on_result,
            )
        except PriceFetchError as exc:
            events.error("PriceFetchError", str(exc))
            _fail(f"Failed to get LTPs: {exc}")
    _finish(result, events, "positions", dry_run)


# ---------- zerodha login ----------


@cli.command()
@click.option("--api-key", default=None, help="Zerodha API key (env ZERODHA_API_KEY).")
@click.option("--api-secret", default=None, help="Zerodha API secret (env ZERODHA_API_SECRET).")
@click.option("--show-token", is_flag=True, default=False, help="Print the access token in full instead of masked.")
@click.pass_context
def login(ctx: click.Context, api_key: str | None, api_secret: str | None, show_token: bool) -> None:
    """Run the interactive login and report (or cache) a fresh access token."""
    creds = _resolve(ctx, api_key=api_key, api_secret=api_secret).with_access_token(None)
    with _fatal_errors():
        _open_session(ctx, creds, show_token)
    if _token_store(ctx.obj["config"]) is None and not show_token:
        click.echo("Set auth.token_cache in the config file or pass --show-token to keep this token.")


if __name__ == "__main__":
    cli()
