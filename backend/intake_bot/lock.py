import logging
import os

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".bot.lock"


def is_pid_running(pid: int) -> bool:
    if pid <= 0:
        return False

    if os.name == "nt":
        # os.kill(pid, 0) would terminate the process on Windows.
        try:
            import ctypes
            from ctypes import wintypes

            PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
            STILL_ACTIVE = 259
            ERROR_ACCESS_DENIED = 5

            kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
            OpenProcess = kernel32.OpenProcess
            OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
            OpenProcess.restype = wintypes.HANDLE

            GetExitCodeProcess = kernel32.GetExitCodeProcess
            GetExitCodeProcess.argtypes = [wintypes.HANDLE, ctypes.POINTER(wintypes.DWORD)]
            GetExitCodeProcess.restype = wintypes.BOOL

            CloseHandle = kernel32.CloseHandle
            CloseHandle.argtypes = [wintypes.HANDLE]
            CloseHandle.restype = wintypes.BOOL

            h = OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, int(pid))
            if not h:
                return int(ctypes.get_last_error()) == ERROR_ACCESS_DENIED
            try:
                code = wintypes.DWORD(0)
                if not GetExitCodeProcess(h, ctypes.byref(code)):
                    return False
                return int(code.value) == STILL_ACTIVE
            finally:
                CloseHandle(h)
        except OSError:
            logger.warning("Could not query pid=%s on Windows; assuming it is alive.", pid)
            return True

    try:
        os.kill(pid, 0)
    except PermissionError:
        return True
    except OSError:
        return False
    else:
        return True


def _parse_pid(raw: str) -> int:
    raw = (raw or "").strip()
    first = raw.splitlines()[0].strip() if raw else ""
    try:
        return int(first)
    except ValueError:
        return -1


class InstanceGuard:
    """Exclusive marker file holding the pid of the process that owns the store.

    A marker whose pid is no longer alive is removed and acquisition is retried
    once; there is no other retry.
    """

    def __init__(self, lock_path: str) -> None:
        self.lock_path = lock_path
        self.held = False

    def _try_create(self) -> bool:
        lock_dir = os.path.dirname(self.lock_path)
        if lock_dir:
            os.makedirs(lock_dir, exist_ok=True)
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(os.getpid()))
        return True

    def _holder_pid(self) -> int | None:
        """Pid recorded in the marker, -1 when unparseable, None when unreadable."""
        try:
            with open(self.lock_path, "r", encoding="utf-8") as f:
                return _parse_pid(f.read())
        except FileNotFoundError:
            return -1
        except OSError as e:
            logger.warning("Could not read lock file %s: %s", self.lock_path, e)
            return None

    def acquire(self) -> bool:
        for attempt in range(2):
            if self._try_create():
                self.held = True
                logger.info("Acquired bot lock: %s (pid=%s)", self.lock_path, os.getpid())
                return True

            if attempt:
                break

            existing_pid = self._holder_pid()
            if existing_pid is None or is_pid_running(existing_pid):
                logger.error(
                    "Another bot instance is running (pid=%s; lock=%s). This instance will exit.",
                    existing_pid,
                    self.lock_path,
                )
                return False

            logger.warning("Removing stale bot lock %s (pid=%s is not running).", self.lock_path, existing_pid)
            try:
                os.remove(self.lock_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Could not remove stale lock %s: %s", self.lock_path, e)
                return False

        logger.error("Could not acquire bot lock: %s", self.lock_path)
        return False

    def release(self) -> None:
        if not self.held:
            return
        self.held = False
        try:
            os.remove(self.lock_path)
            logger.info("Released bot lock: %s", self.lock_path)
        except OSError as e:
            logger.debug("Ignoring lock release failure for %s: %s", self.lock_path, e)
