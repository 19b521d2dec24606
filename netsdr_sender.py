#!/usr/bin/env python3
"""Stream synthetic NetSDR data packets over UDP for testing a client.

Each packet is a DATA_ITEM_0 message: 2-byte header, 2-byte sequence number
and a block of random sample bytes.
"""

import argparse
import logging
import time

from netsdrclient.common import NETSDR_UDP_PORT, log
from netsdrclient.sender import SAMPLE_BLOCK_SIZE, UDPTimedSender


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Send synthetic NetSDR IQ packets over UDP")
    parser.add_argument('--host', default='127.0.0.1', help='Destination address')
    parser.add_argument('--port', type=int, default=NETSDR_UDP_PORT, help='Destination UDP port')
    parser.add_argument('--interval-ms', type=int, default=5000,
                        help='Milliseconds between packets')
    parser.add_argument('--block-size', type=int, default=SAMPLE_BLOCK_SIZE,
                        help='Sample bytes per packet')
    parser.add_argument('--secs', type=float, default=0,
                        help='Seconds to run; 0 runs until interrupted')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    args = parser.parse_args(argv)

    logging.getLogger().setLevel(getattr(logging, args.log_level))

    with UDPTimedSender(args.host, args.port, block_size=args.block_size) as sender:
        sender.start_sending(args.interval_ms)
        print(f"Sending to {args.host}:{args.port}, press Ctrl+C to stop")
        try:
            if args.secs > 0:
                time.sleep(args.secs)
            else:
                while True:
                    time.sleep(1.0)
        except KeyboardInterrupt:
            pass
        log.info(f"Sent {sender.sent_count} packets")


if __name__ == '__main__':
    main()
