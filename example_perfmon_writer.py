#!/usr/bin/env python3
"""
Example perfmon writer for testing purposes.
Appends Snort perfmon-style rows to a file so snort-perfmon has something to poll.
"""

import argparse
import random
import sys
import time

HEADER = (
    "#time,pkt_drop_percent,wire_mbits_per_sec.realtime,alerts_per_second,"
    "kpackets_wire_per_sec.realtime,avg_bytes_per_wire_packet,total_sessions"
)


def write_rows(path, interval, count):
    """Append *count* rows to *path*, one every *interval* seconds (0 = forever)."""

    print(f"Perfmon writer appending to {path}")
    print("=" * 60)

    with open(path, "a") as f:
        if f.tell() == 0:
            f.write(HEADER + "\n")

        total_sessions = 0
        written = 0
        while count == 0 or written < count:
            total_sessions += random.randint(0, 500)
            row = [
                str(int(time.time())),
                f"{random.random():.3f}",
                f"{random.uniform(10, 900):.2f}",
                f"{random.uniform(0, 5):.2f}",
                f"{random.uniform(1, 80):.2f}",
                str(random.randint(60, 1500)),
                str(total_sessions),
            ]
            f.write(",".join(row) + "\n")
            f.flush()
            written += 1
            print(f"  - row {written}: {','.join(row)}")
            time.sleep(interval)

    print("=" * 60)
    print("Perfmon writer complete!")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Append fake Snort perfmon rows")
    parser.add_argument("path", nargs="?", default="/tmp/snort.stats")
    parser.add_argument("--interval", type=float, default=1.0)
    parser.add_argument("--count", type=int, default=10)
    args = parser.parse_args()
    try:
        sys.exit(write_rows(args.path, args.interval, args.count))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
