"""
exp-run interactive shell.

Usage:
    exp-run                       # interactive prompt
    exp-run get-details           # run one command and exit
    exp-run --data-dir ./state set-range 1 2 3 4 --keep-first
"""

import argparse
import cmd
import logging
import shlex
import sys
import threading
from typing import Callable, List, Optional

from .config import APP_NAME, PROMPT, AppConfig, load_config, setup_logging
from .errors import ExpRunError, ValidationError
from .redirect import RedirectClient
from .report import render_details
from .results import read_saved_users, write_user_details, write_users_summary
from .runner import ExperimentRunner
from .schema import EndpointKind
from .state import ExperimentSession
from .store import AppDataStore

try:
    import readline
    _HAS_READLINE = True
except ImportError:
    _HAS_READLINE = False

logger = logging.getLogger(__name__)


class _ParserDone(Exception):
    """argparse printed help and wants to stop."""


class _CommandParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors instead of exiting the process."""

    def error(self, message):
        raise ValidationError(f"{self.prog}: {message}")

    def exit(self, status=0, message=None):
        if message:
            self._print_message(message)
        raise _ParserDone()


def _parser(prog: str, description: str) -> _CommandParser:
    return _CommandParser(prog=prog, description=description, add_help=True)


def _slot_parser(kind: EndpointKind) -> _CommandParser:
    p = _parser(f"set-{kind.value}-redirect", f"Sets the {kind.value} redirect endpoint. Passing no value unsets it.")
    p.add_argument("number", nargs="?", type=int)
    return p


def _url_parser(kind: EndpointKind) -> _CommandParser:
    p = _parser(f"set-{kind.value}", f"Sets the {kind.value} URL. Passing no value unsets the {kind.value} URL.")
    p.add_argument("url", nargs="?")
    return p


_SET_RANGE = _parser("set-range", "Sets the experiment range. Passing no values unsets the range.")
_SET_RANGE.add_argument("numbers", nargs="*")
_SET_RANGE.add_argument("-k", "--keep-first", action="store_true",
                        help="keep the first range value in the first position of every order")

_SET_SAVE_DIR = _parser("set-save-dir", "Sets the experiment save directory. Passing no value unsets it.")
_SET_SAVE_DIR.add_argument("directory", nargs="?")

_SET_USER = _parser("set-user", "Sets the user email address. Passing no value unsets the user email address.")
_SET_USER.add_argument("email", nargs="?")

_LIST_SAVED = _parser("list-saved-users", "Lists saved users and writes a CSV summary to the save directory.")
_LIST_SAVED.add_argument("-o", "--output", help="summary CSV path (default: <save-dir>/users_summary.csv)")

_RUN = _parser("run-experiments", "Steps through the user's experiment order, redirecting the server and beacon.")
_RUN.add_argument("--restart", action="store_true", help="start again from the first experiment")


class ExpRunShell(cmd.Cmd):
    """Command names use hyphens at the prompt (set-user) and underscores in do_ methods."""

    identchars = cmd.Cmd.identchars + "-"
    prompt = PROMPT
    intro = f"{APP_NAME}: type 'help' to list commands, 'exit' to leave."

    def __init__(
        self,
        session: ExperimentSession,
        client: RedirectClient,
        stdout=None,
        input_func: Callable[[str], str] = input,
    ):
        super().__init__(stdout=stdout)
        self.session = session
        self.client = client
        self.cancel_event = threading.Event()
        self._input = input_func

    # -- plumbing -----------------------------------------------------------

    def say(self, message: str) -> None:
        self.stdout.write(f"{message}\n")

    def parseline(self, line):
        command, arg, line = super().parseline(line)
        if command:
            command = command.replace("-", "_")
        return command, arg, line

    def completenames(self, text, *ignored):
        return [
            name[3:].replace("_", "-")
            for name in self.get_names()
            if name.startswith("do_") and name[3:].replace("_", "-").startswith(text)
        ]

    def print_topics(self, header, cmds, cmdlen, maxcol):
        super().print_topics(header, [c.replace("_", "-") for c in cmds] if cmds else cmds, cmdlen, maxcol)

    def do_help(self, arg):
        """List commands, or show help for one command."""
        return super().do_help(arg.replace("-", "_"))

    def emptyline(self):
        return False

    def default(self, line):
        self.say(f"Invalid command: {line.split()[0] if line.split() else line}. Type 'help' to list commands.")

    def onecmd(self, line):
        try:
            return super().onecmd(line)
        except _ParserDone:
            return False
        except ExpRunError as e:
            logger.debug(f"Command rejected: {line!r}: {e}")
            self.say(str(e))
            return False

    def _args(self, parser: _CommandParser, arg: str) -> argparse.Namespace:
        try:
            tokens = shlex.split(arg)
        except ValueError as e:
            raise ValidationError(f"{parser.prog}: {e}") from None
        return parser.parse_args(tokens)

    def _no_args(self, name: str, arg: str) -> None:
        if arg.strip():
            raise ValidationError(f"{name}: takes no arguments")

    # -- server / beacon ----------------------------------------------------

    def _get_url(self, kind: EndpointKind) -> None:
        endpoint = self.session.endpoint(kind)
        self.say(f"{endpoint.label} URL set to: {endpoint.url}" if endpoint.url else f"{endpoint.label} URL not set!")

    def _set_url(self, kind: EndpointKind, arg: str) -> None:
        args = self._args(_url_parser(kind), arg)
        endpoint = self.session.endpoint(kind)
        endpoint.set_url(args.url)
        self.say(f"Setting {kind.value} URL to: {args.url}" if args.url else f"Unsetting {kind.value} URL")

    def _get_redirect(self, kind: EndpointKind) -> None:
        endpoint = self.session.endpoint(kind)
        slot = endpoint.redirect_slot
        if slot is None:
            self.say(f"{endpoint.label} redirect endpoint not set!")
        else:
            self.say(f"{endpoint.label} redirect endpoint set to: {slot}")

    def _set_redirect(self, kind: EndpointKind, arg: str) -> None:
        args = self._args(_slot_parser(kind), arg)
        slot = args.number
        self.session.endpoint(kind).authorize(slot)
        self.say(
            f"Setting {kind.value} redirect endpoint to: {slot}" if slot is not None
            else f"Unsetting {kind.value} redirect endpoint"
        )
        self.say(self.session.send_redirect(kind, slot, self.client))

    def do_get_server(self, arg):
        """Gets the current server URL"""
        self._get_url(EndpointKind.SERVER)

    def do_set_server(self, arg):
        """Sets the server URL. Passing no value unsets the server URL."""
        self._set_url(EndpointKind.SERVER, arg)

    def do_get_server_redirect(self, arg):
        """Gets the server redirect endpoint"""
        self._get_redirect(EndpointKind.SERVER)

    def do_set_server_redirect(self, arg):
        """Sets the server redirect endpoint. Passing no value unsets it."""
        self._set_redirect(EndpointKind.SERVER, arg)

    def do_get_beacon(self, arg):
        """Gets the current beacon URL"""
        self._get_url(EndpointKind.BEACON)

    def do_set_beacon(self, arg):
        """Sets the beacon URL. Passing no value unsets the beacon URL."""
        self._set_url(EndpointKind.BEACON, arg)

    def do_get_beacon_redirect(self, arg):
        """Gets the beacon redirect endpoint"""
        self._get_redirect(EndpointKind.BEACON)

    def do_set_beacon_redirect(self, arg):
        """Sets the beacon redirect endpoint. Passing no value unsets it."""
        self._set_redirect(EndpointKind.BEACON, arg)

    def do_check_beacon(self, arg):
        """Checks the beacon is responding."""
        url = self.session.beacon.url
        if not url:
            self.say("Cannot check beacon as beacon URL not set")
            return
        self.say(f"Checking beacon: {url}")
        try:
            self.say(f"Beacon responded: {self.client.check(url)}")
        except ExpRunError as e:
            self.say(f"Beacon response: failure: {e}")

    # -- range / save dir ---------------------------------------------------

    def do_get_range(self, arg):
        """Gets the experiment range"""
        spec = self.session.range.current()
        if spec.is_empty:
            self.say("Experiment range not set!")
            return
        suffix = " (first position kept)" if spec.pin_first else ""
        self.say(f"Experiment range set to: {self.session.range.describe()}{suffix}")

    def do_set_range(self, arg):
        """Sets the experiment range. Passing no values unsets the range."""
        args = self._args(_SET_RANGE, arg)
        spec = self.session.set_range(args.numbers, pin_first=args.keep_first)
        if spec.is_empty:
            self.say("Unsetting experiment range")
        else:
            suffix = " (first position kept)" if spec.pin_first else ""
            self.say(f"Setting experiment range to: {self.session.range.describe()}{suffix}")

    def do_get_save_dir(self, arg):
        """Gets the experiment save directory"""
        path = self.session.save_dir.path
        self.say(f"Experiment save directory set to: {path}" if path else "Experiment save directory not set!")

    def do_set_save_dir(self, arg):
        """Sets the experiment save directory, resolving it where necessary. Passing no value unsets it."""
        args = self._args(_SET_SAVE_DIR, arg)
        path = self.session.save_dir.set(args.directory)
        self.say(f"Setting experiment save directory to: {path}" if path else "Unsetting experiment save directory")

    # -- user ---------------------------------------------------------------

    def do_get_user(self, arg):
        """Gets the current user email"""
        email = self.session.user.email
        self.say(f"User email address set to: {email}" if email else "User email address not set!")

    def do_set_user(self, arg):
        """Sets the user email address. Passing no value unsets the user email address."""
        args = self._args(_SET_USER, arg)
        order = self.session.set_user(args.email)
        if not args.email:
            self.say("Unsetting user email address")
            return
        self.say(f"Setting user email address to: {args.email}")
        if order is None:
            self.say("Could not generate user experiment order because experiment range has not been set")

    def do_get_user_order(self, arg):
        """Gets the user's experiment order"""
        sequence = self.session.user.sequence
        if sequence:
            self.say(f"User's experiment order is: {','.join(str(n) for n in sequence)}")
        else:
            self.say("User's experiment order not set (probably as there is no user email).")

    def do_save_user_details(self, arg):
        """Saves the current user details to the experiment save directory."""
        self._no_args("save-user-details", arg)
        path = write_user_details(
            self.session.save_dir.path, self.session.user.email, self.session.user.sequence
        )
        self.say(f"Saving current user details to: {path}")

    def do_list_saved_users(self, arg):
        """Lists saved users and writes a CSV summary to the save directory."""
        args = self._args(_LIST_SAVED, arg)
        path = write_users_summary(self.session.save_dir.path, args.output)
        df = read_saved_users(self.session.save_dir.path)
        if df.empty:
            self.say("No saved users found")
        else:
            df["exp_order"] = df["exp_order"].map(lambda order: ",".join(str(n) for n in order))
            self.say(df[["email", "exp_order"]].to_string(index=False))
        self.say(f"Summary written to: {path}")

    # -- running ------------------------------------------------------------

    def _advance(self, position: int, condition: int, total: int) -> bool:
        last = position + 1 >= total
        prompt = (
            f"Running experiment {position + 1} of {total} (condition {condition}). "
            f"Press Enter to {'finish' if last else 'continue'}, q to abort: "
        )
        try:
            answer = self._input(prompt)
        except (KeyboardInterrupt, EOFError):
            self.cancel_event.set()
            return False
        return answer.strip().lower() not in ("q", "quit", "abort")

    def do_run_experiments(self, arg):
        """Steps through the user's experiment order, redirecting the server and beacon to each condition."""
        args = self._args(_RUN, arg)
        runner = ExperimentRunner(self.session, self.client, cancel_event=self.cancel_event, report=self.say)
        if args.restart:
            runner.reset()
        result = runner.run(self._advance)
        if result.error:
            self.say(f"Experiment run stopped: {result.error}")
        elif result.cancelled:
            self.say(f"Experiment run aborted at experiment {result.position + 1} of {result.total}")
        elif result.completed:
            self.say(f"Completed all {result.total} experiments")

    def do_get_details(self, arg):
        """Gets all current settings"""
        self.say(render_details(self.session))

    # -- leaving ------------------------------------------------------------

    def do_exit(self, arg):
        """Exits the application"""
        return True

    do_quit = do_exit

    def do_EOF(self, arg):
        """Exits the application"""
        self.say("")
        return True


def _load_history(config: AppConfig) -> None:
    if _HAS_READLINE and config.history_path.exists():
        try:
            readline.read_history_file(str(config.history_path))
        except OSError as e:
            logger.warning(f"Could not read command history: {e}")


def _save_history(config: AppConfig) -> None:
    if not _HAS_READLINE:
        return
    try:
        config.history_path.parent.mkdir(parents=True, exist_ok=True)
        readline.write_history_file(str(config.history_path))
    except OSError as e:
        logger.warning(f"Could not save command history: {e}")


def build_shell(config: AppConfig, stdout=None) -> ExpRunShell:
    session = ExperimentSession(AppDataStore(config.data_dir))
    client = RedirectClient(timeout=config.http_timeout)
    return ExpRunShell(session, client, stdout=stdout)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Configure and run user-randomized experiments")
    parser.add_argument("--data-dir", help="where settings are stored (default: per-user app data folder)")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="run a single shell command and exit")
    opts = parser.parse_args(argv)

    config = load_config(data_dir=opts.data_dir, http_timeout=opts.timeout, log_level=opts.log_level)
    setup_logging(config.log_level)
    logger.info(f"Using data directory {config.data_dir}")

    shell = build_shell(config)
    try:
        if opts.command:
            shell.onecmd(" ".join(shlex.quote(token) for token in opts.command))
        else:
            _load_history(config)
            while True:
                try:
                    shell.cmdloop()
                    break
                except KeyboardInterrupt:
                    shell.say("^C")
                    shell.intro = None
            _save_history(config)
    finally:
        try:
            shell.session.close()
        except ExpRunError as e:
            logger.error(f"Could not save settings on exit: {e}")
        shell.client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
