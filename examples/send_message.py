"""
Message sending example.

Demonstrates text, binary and persistent sends.
"""

from rockblockpy import RockBLOCKModem, SessionError, BinaryWriteError

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def main():
    """Main function."""
    print("RockBLOCKPy - Send Message Example\n")

    with RockBLOCKModem(port=PORT) as modem:
        modem.wait_for_network(timeout=120)

        # Text message
        try:
            status = modem.send_text("Hello from RockBLOCKPy")
            print(f"Text sent as MOMSN {status.momsn}")
        except SessionError as e:
            print(f"Text send failed (MO status {e.status.mo_status})")

        # Binary message
        try:
            status = modem.send_binary(bytes([0x01, 0x02, 0x03]))
            print(f"Binary sent as MOMSN {status.momsn}")
        except BinaryWriteError as e:
            print(f"Modem rejected the upload (code {e.code})")
        except SessionError as e:
            print(f"Binary send failed (MO status {e.status.mo_status})")

        # Persistent message: retried in the background until delivered
        modem.send_binary_persistent(b"telemetry:42")
        print(f"Queued persistent message ({modem.pending_messages} pending)")

        modem.wait_until_sent()
        print("All persistent messages handled")


if __name__ == "__main__":
    main()
