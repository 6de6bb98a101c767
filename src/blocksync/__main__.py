from __future__ import annotations

import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from blocksync.arguments import Arguments
from blocksync.block import BlockChecksum
from blocksync.checksums import checksums
from blocksync.error import SyncError


def _configure_logging(console: Console, verbose: bool) -> None:
  logging.basicConfig(
    level=logging.DEBUG if verbose else logging.WARNING,
    format='%(message)s',
    handlers=[RichHandler(console=console, show_path=False)],
    force=True,
  )


def _format_error(record: BlockChecksum) -> str:
  error = record.error
  cause = error.__cause__ if error is not None else None
  message = str(error)

  if cause is not None:
    message += f': {cause}'

  return message


def _build_table(records: list[BlockChecksum]) -> Table:
  table = Table(show_lines=False)
  table.add_column('Block', justify='right')
  table.add_column('Weak')
  table.add_column('Strong', overflow='fold')
  table.add_column('Status')

  for record in records:
    if record.ok:
      table.add_row(str(record.index), f'{record.weak:08x}', record.strong.hex(), 'ok')
    else:
      table.add_row(str(record.index), '-', '-', f'[red]{_format_error(record)}[/]')

  return table


def main(argv: Optional[Sequence[str]] = None) -> int:
  arguments = Arguments.from_args(argv)

  console, err_console = Console(), Console(stderr=True)

  _configure_logging(err_console, arguments.verbose)

  records: list[BlockChecksum] = []

  try:
    with arguments.source.open('rb') as source:
      stream = checksums(
        source,
        arguments.hash,
        block_size=arguments.block_size,
        strong_mode=arguments.strong_mode,
      )
      records.extend(stream)
  except (SyncError, OSError) as exc:
    err_console.print(f'[bold red]error:[/] {exc}')
    return 1
  except Exception as exc:
    err_console.print(f'[bold red]error:[/] {exc}')
    return 1

  console.print(_build_table(records))

  failed = sum(1 for record in records if not record.ok)
  total_bytes = arguments.source.stat().st_size

  console.print(
    '[bold green]Total:[/] '
    f'{len(records):,} blocks | '
    f'{total_bytes:,} bytes | '
    f'block size {arguments.block_size:,} bytes'
  )

  if failed:
    err_console.print(f'[bold red]error:[/] {failed} block(s) could not be read')
    return 1

  return 0


if __name__ == '__main__':
  raise SystemExit(main())
