"""
Signal quality monitoring example.

Demonstrates polling signal strength and waiting for coverage.
"""

import time
from rockblockpy import RockBLOCKModem, NetworkError

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def main():
    """Main function."""
    print("RockBLOCKPy - Signal Quality Monitor\n")

    with RockBLOCKModem(port=PORT) as modem:
        print("Waiting up to 2 minutes for a satellite...\n")

        try:
            signal = modem.wait_for_network(timeout=120)
            print(f"Network available (signal {signal}/5)\n")
        except NetworkError as e:
            print(f"No network: {e}\n")

        print("Monitoring signal quality (Ctrl+C to stop)...\n")

        try:
            while True:
                signal = modem.get_signal_quality()
                print(f"Signal: {'#' * signal}{'.' * (5 - signal)} ({signal}/5)")
                time.sleep(10)

        except KeyboardInterrupt:
            print("\nStopping...")


if __name__ == "__main__":
    main()
