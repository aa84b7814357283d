"""Utilities for handling KeyboardInterrupt in try-except blocks.

The linker runs synchronously on the calling thread; when a build is driven
from a worker thread, an interrupt caught there must still reach the main
thread.
"""

import _thread


def handle_keyboard_interrupt_properly(ke: KeyboardInterrupt) -> None:
    """Propagate a KeyboardInterrupt to the main thread and re-raise it.

    Usage:
        try:
            stdout, stderr = process.communicate()
        except KeyboardInterrupt as ke:
            kill_process_tree(process.pid)
            handle_keyboard_interrupt_properly(ke)

    Args:
        ke: The KeyboardInterrupt exception to handle

    Raises:
        KeyboardInterrupt: Always re-raises the exception after handling
    """
    _thread.interrupt_main()
    raise ke
