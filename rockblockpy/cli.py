"""
CLI REPL (Read-Eval-Print Loop) for RockBLOCKPy.

Provides an interactive terminal for sending SBD messages and querying the modem.
"""

import sys
import logging
from typing import Optional

from .modem import RockBLOCKModem
from .version import __version__
from .types import EventKind, MessageEvent
from .exceptions import RockBLOCKError


class RockBLOCKCLI:
    """Interactive SBD terminal."""

    def __init__(self, port: str, baudrate: int = 19200, protocol_timeout: float = 300.0):
        """
        Initialize CLI.

        Args:
            port: Serial port path
            baudrate: Baud rate
            protocol_timeout: Bound on each response wait in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.protocol_timeout = protocol_timeout
        self.modem: Optional[RockBLOCKModem] = None
        self.event_count = 0

    def _display_event(self, event: MessageEvent) -> None:
        """Print message events as they arrive."""
        self.event_count += 1
        if event.kind == EventKind.RECEIVED:
            print(f"\n[RECEIVED {self.event_count}] {event.data!r}")
        else:
            print(f"\n[SENT {self.event_count}] {event.data!r}")
        print("> ", end="", flush=True)

    def run(self):
        """Run the REPL."""
        print(f"RockBLOCKPy CLI v{__version__}")
        print(f"Connecting to {self.port} at {self.baudrate} baud...")
        print("Type 'help' for commands, 'quit' to exit\n")

        try:
            self.modem = RockBLOCKModem(
                port=self.port,
                baudrate=self.baudrate,
                protocol_timeout=self.protocol_timeout
            )
            self.modem.add_message_handler(self._display_event)
            self.modem.start()

            print("Connected! Ready for commands.\n")

            # REPL loop
            while True:
                try:
                    line = input("> ").strip()

                    if not line:
                        continue

                    cmd, _, arg = line.partition(" ")
                    cmd = cmd.lower()

                    if cmd in ("quit", "exit", "q"):
                        break

                    self._dispatch(cmd, arg.strip(), line)

                except KeyboardInterrupt:
                    print("\nUse 'quit' to exit")
                    continue
                except EOFError:
                    break

        except RockBLOCKError as e:
            print(f"\nError: {e}")
            return 1
        except Exception as e:
            print(f"\nUnexpected error: {e}")
            logging.exception("CLI error")
            return 1
        finally:
            if self.modem:
                print("\nClosing connection...")
                self.modem.close()
                print("Goodbye!")

        return 0

    def _dispatch(self, cmd: str, arg: str, line: str) -> None:
        """Run one REPL command, reporting errors without leaving the loop."""
        try:
            if cmd == "help":
                self._print_help()
            elif cmd == "text":
                status = self.modem.send_text(arg)
                print(f"Sent (MOMSN {status.momsn}, {status.mt_queued} MT queued)")
            elif cmd == "binary":
                status = self.modem.send_binary(bytes.fromhex(arg))
                print(f"Sent (MOMSN {status.momsn}, {status.mt_queued} MT queued)")
            elif cmd == "queue":
                self.modem.send_binary_persistent(bytes.fromhex(arg))
                print(f"Queued ({self.modem.pending_messages} pending)")
            elif cmd == "signal":
                print(f"Signal: {self.modem.get_signal_quality()}/5")
            elif cmd == "wait":
                seconds = float(arg) if arg else 60.0
                signal = self.modem.wait_for_network(seconds)
                print(f"Network available (signal {signal}/5)")
            elif cmd == "time":
                print(f"Iridium time: {self.modem.get_time().isoformat()}")
            elif cmd == "mailbox":
                status = self.modem.check_mailbox()
                print(f"Mailbox: MT status {status.mt_status}, {status.mt_queued} queued")
            elif cmd == "history":
                for raw in self.modem.history:
                    print(f"  {raw!r}")
            elif cmd.startswith("at"):
                for response_line in self.modem.send_raw_at(line):
                    print(response_line)
            else:
                print(f"Unknown command: {line} (type 'help')")
        except RockBLOCKError as e:
            print(f"Error: {e}")
        except ValueError as e:
            print(f"Invalid argument: {e}")

    def _print_help(self):
        """Print help message."""
        print("""
Available commands:
  text <message>  - Send a text message and wait for the session
  binary <hex>    - Send a binary message (hex encoded)
  queue <hex>     - Queue a binary message for persistent delivery
  signal          - Show signal quality (0-5)
  wait [seconds]  - Wait for network coverage (default 60s)
  time            - Show Iridium network time
  mailbox         - Run a session to check for MT messages
  history         - Show recent modem response lines
  <AT command>    - Send a raw AT command (e.g., AT+CGSN)
  help            - Show this help message
  quit/exit/q     - Exit CLI
        """)


def main():
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="RockBLOCKPy CLI - Interactive Iridium SBD terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rockblock-cli /dev/ttyUSB0
  rockblock-cli /dev/ttyUSB0 --baudrate 19200
  rockblock-cli /dev/ttyUSB0 --protocol-timeout 120 -v
        """
    )

    parser.add_argument(
        "port",
        help="Serial port (e.g., /dev/ttyUSB0, COM3)"
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        default=19200,
        help="Baud rate (default: 19200)"
    )
    parser.add_argument(
        "--protocol-timeout",
        type=float,
        default=300.0,
        help="Seconds to wait for each modem response (default: 300)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    cli = RockBLOCKCLI(
        port=args.port,
        baudrate=args.baudrate,
        protocol_timeout=args.protocol_timeout
    )

    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
