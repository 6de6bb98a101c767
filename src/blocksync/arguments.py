from __future__ import annotations

import argparse
import typing as t
from dataclasses import dataclass
from pathlib import Path

from .block import DEFAULT_BLOCK_SIZE
from .checksums import StrongMode


class HelpFormatter(argparse.HelpFormatter):
  """
  Compact help layout: a single usage line, then one aligned line per argument
  showing its value placeholder, help text and default.
  """

  def __init__(
    self,
    prog: str,
    indent_increment: int = 2,
    max_help_position: int = 32,
    width: t.Optional[int] = None,
  ):
    super().__init__(prog, indent_increment, max_help_position, width)

  def _placeholder(self, action: argparse.Action) -> str:
    if action.choices is not None:
      return '{' + ','.join(str(choice) for choice in action.choices) + '}'

    if isinstance(action.metavar, str):
      return action.metavar

    return action.dest.upper()

  def _format_usage(
    self,
    usage: t.Optional[str],
    actions: t.Iterable[argparse.Action],
    groups: t.Iterable[argparse._MutuallyExclusiveGroup],
    prefix: t.Optional[str],
  ) -> str:
    """
    Positionals first, then valued options, then all flags in one bracket.
    """
    if usage is not None:
      return usage

    _ = groups

    positionals: list[str] = []
    options: list[str] = []
    flags: list[str] = []

    for action in actions:
      if isinstance(action, argparse._HelpAction):
        continue

      if not action.option_strings:
        positionals.append(action.dest)
      elif action.nargs == 0:
        flags.append(action.option_strings[0])
      else:
        display = f'{action.option_strings[0]} {self._placeholder(action)}'
        options.append(display if action.required else f'[{display}]')

    parts = [*positionals, *options]

    if flags:
      parts.append(f'[{" ".join(flags)}]')

    return f'{prefix or "usage: "}{self._prog} {" ".join(parts)}\n\n'

  def _format_action_invocation(self, action: argparse.Action) -> str:
    if not action.option_strings:
      return action.dest

    names = ', '.join(action.option_strings)

    if action.nargs == 0:
      return names

    return f'{names} {self._placeholder(action)}'

  def _format_action(self, action: argparse.Action) -> str:
    invocation = self._format_action_invocation(action)

    if isinstance(action, argparse._HelpAction):
      help_text = 'Show this help message and exit'
    else:
      help_text = action.help or ''
      if action.default is not None and action.default != argparse.SUPPRESS:
        help_text = f'{help_text} (default: {str(action.default)})'

    column = self._max_help_position

    if len(invocation) + 2 >= column:
      return f'  {invocation}\n{" " * column}{help_text}\n'

    return f'  {invocation.ljust(column - 2)}{help_text}\n'


@dataclass
class Arguments:
  """
  A wrapper class providing concrete types for parsed command-line arguments.
  """

  source: Path
  block_size: int
  hash: str
  strong_mode: StrongMode
  verbose: bool

  @staticmethod
  def from_args(argv: t.Optional[t.Sequence[str]] = None) -> Arguments:
    parser = argparse.ArgumentParser(
      prog='blocksync',
      description='Print the block checksums of a file.',
      formatter_class=HelpFormatter,
    )

    parser.add_argument('source', type=Path, help='Path to the file to scan')

    parser.add_argument(
      '--block-size',
      type=int,
      default=DEFAULT_BLOCK_SIZE,
      help='Block size in bytes.',
    )

    parser.add_argument(
      '--hash',
      default='md5',
      help='hashlib algorithm used for strong checksums.',
    )

    parser.add_argument(
      '--strong-mode',
      type=StrongMode,
      choices=list(StrongMode),
      default=StrongMode.DIGEST,
      help='Hash the block (digest) or reproduce legacy strong checksums (legacy).',
    )

    parser.add_argument(
      '-v',
      '--verbose',
      action='store_true',
      help='Enable debug logging.',
    )

    return Arguments(**vars(parser.parse_args(argv)))
