"""
Message event example.

Demonstrates handlers for sent confirmations and received messages.
"""

import time
from rockblockpy import RockBLOCKModem, EventKind, MessageEvent

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def on_message(event: MessageEvent):
    """Handle message events."""
    if event.kind == EventKind.RECEIVED:
        print(f"\n[RECEIVED] {event.data!r}")
    else:
        print(f"\n[SENT] {len(event.data)} bytes delivered")


def main():
    """Main function."""
    print("RockBLOCKPy - Message Event Example\n")

    with RockBLOCKModem(port=PORT) as modem:
        modem.add_message_handler(on_message)

        print("Handler registered!")
        print("Checking the mailbox every minute (Ctrl+C to stop)...\n")

        try:
            while True:
                status = modem.check_mailbox()
                print(f"Mailbox checked: {status.mt_queued} more message(s) queued")
                time.sleep(60)

        except KeyboardInterrupt:
            print("\nStopping...")


if __name__ == "__main__":
    main()
