"""interpret command - turn a raw model response into a structured analysis.

Useful for replaying responses captured from a model, or for checking how a
new model's output format is read before switching providers.
"""

from __future__ import annotations

import json

import click

from commitlens_core.analysis import ResponseInterpreter


@click.command("interpret")
@click.argument("response_file", type=click.File("r", encoding="utf-8"), default="-")
@click.pass_context
def interpret_cmd(ctx, response_file):
    """Interpret a raw model response (file or stdin) and print the analysis as JSON."""
    config = ctx.obj["config"]
    interpreter = ResponseInterpreter(sentinel_tokens=config.get("sentinel_tokens"))
    result = interpreter.interpret(response_file.read())
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
