"""Operator commands typed into the live dashboard."""

from typing import Optional, Tuple

from .exceptions import InvalidActionError
from .reconcilers import ActionDispatcher
from .scheduler import PollScheduler

HELP = "r refresh | n next | p prev | s <state> | t <type> | f <text> | retry <id> | dlq <id> | q quit"

ALIASES = {
    'refresh': 'r',
    'next': 'n',
    'prev': 'p',
    'state': 's',
    'type': 't',
    'find': 'f',
    'quit': 'q',
    'exit': 'q',
}


def parse_command(line: str) -> Tuple[str, Optional[str]]:
    parts = line.strip().split(None, 1)
    if not parts:
        return '', None
    name = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else None
    return ALIASES.get(name, name), arg


async def run_command(line: str, scheduler: PollScheduler, dispatcher: ActionDispatcher) -> bool:
    """Apply one command line. Returns False when the operator asked to quit."""
    name, arg = parse_command(line)

    if not name:
        return True
    if name == 'q':
        return False
    if name == 'r':
        scheduler.refresh()
    elif name == 'n':
        scheduler.next_page()
    elif name == 'p':
        scheduler.prev_page()
    elif name == 's':
        scheduler.set_state_filter(arg)
    elif name == 't':
        scheduler.set_job_type_filter(arg)
    elif name == 'f':
        scheduler.set_text_filter(arg)
    elif name in ('retry', 'dlq'):
        if not arg:
            raise InvalidActionError(f"Usage: {name} <job-id>")
        scheduler.dispatch(dispatcher, arg, name)
    else:
        raise InvalidActionError(f"Unknown command '{name}'. {HELP}")
    return True
