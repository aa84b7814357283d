"""Process tree cleanup.

The forked linker runs under a shell, so interrupting the build must take
down the shell and everything it spawned.
"""

import logging

import psutil

logger = logging.getLogger(__name__)


def kill_process_tree(root_pid: int, timeout: float = 3) -> int:
    """Terminate a process and all of its descendants.

    Children are terminated before their parents; stragglers still alive
    after `timeout` seconds are killed.

    Args:
        root_pid: PID of the tree root
        timeout: Seconds to wait for graceful termination

    Returns:
        Number of processes signalled
    """
    try:
        root_proc = psutil.Process(root_pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        children = root_proc.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    processes_to_kill = list(reversed(children)) + [root_proc]

    killed_count = 0
    for proc in processes_to_kill:
        try:
            proc.terminate()
            killed_count += 1
            logger.debug(f"Terminated process {proc.pid}")
        except psutil.NoSuchProcess:
            pass  # Already dead
        except psutil.AccessDenied as e:
            logger.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(processes_to_kill, timeout=timeout)

    for proc in alive:
        try:
            proc.kill()
            logger.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied as e:
            logger.warning(f"Failed to force kill process {proc.pid}: {e}")

    return killed_count
