"""
Basic connection example.

Demonstrates connecting to a modem and reading network state.
"""

from rockblockpy import RockBLOCKModem, RockBLOCKError

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def main():
    """Main function."""
    print("RockBLOCKPy - Basic Connection Example\n")

    # Connect to modem using context manager
    # This automatically starts and closes the modem
    with RockBLOCKModem(port=PORT) as modem:
        print("Connected to modem!\n")

        signal = modem.get_signal_quality()
        print(f"Signal quality: {signal}/5")

        try:
            network_time = modem.get_time()
            print(f"Iridium time: {network_time.isoformat()}")
        except RockBLOCKError as e:
            print(f"Network time unavailable: {e}")
            if e.fallback_time:
                print(f"Local time: {e.fallback_time.isoformat()}")

    print("\nConnection closed.")


if __name__ == "__main__":
    main()
