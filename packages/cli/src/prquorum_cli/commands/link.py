"""link: short base-62 references for pull requests."""

from __future__ import annotations

import click
from rich.console import Console

from prquorum_core.codec import ValidationError, encode, route_item_id
from prquorum_core.links import item_url

console = Console()


@click.command("link")
@click.argument("ref")
@click.option("--decode", "decode_ref", is_flag=True, help="Turn a short token back into a pull request number.")
@click.option("--repo", default=None, help="Also print the full URL for this repository (owner/name).")
@click.pass_context
def link_cmd(ctx, ref: str, decode_ref: bool, repo: str | None):
    """Encode a pull request number as a short token, or decode one.

    \b
    Examples:
      prquorum link 12041652            ->  OwAc
      prquorum link --decode OwAc       ->  12041652
    """
    config = ctx.obj.get("config", {}) if ctx.obj else {}
    try:
        if decode_ref:
            number = route_item_id(ref)
            click.echo(number)
        else:
            if not (ref.isascii() and ref.isdigit()):
                raise ValidationError(f"Pull request number must be a non-negative integer, got {ref!r}")
            number = int(ref)
            click.echo(encode(number))
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="REF")

    if repo:
        console.print(item_url(repo, number))
        short_base = config.get("short_url_base")
        if short_base:
            console.print(item_url(repo, number, short_base))
