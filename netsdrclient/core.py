"""NetSDR client command line entrypoint."""

import argparse
import logging
import time

from .client import NetSdrClient
from .common import NETSDR_TCP_PORT, NETSDR_UDP_PORT, log
from .errors import ControlRequestTimeout
from .setup import CAPTURE_MODE_16BIT_FIFO, CAPTURE_MODE_24BIT_CONTIG, ReceiverSetup
from .sink import SampleFileSink
from .tcp_client import NetSdrTCPClient
from .udp_client import NetSdrUDPReceiver


def _configure_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(message)s')
    else:
        root_logger.setLevel(level)

    logging.getLogger('netsdrclient').setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NetSDR IQ receiver client")
    parser.add_argument("--host", default="127.0.0.1", help="Receiver IP address")
    parser.add_argument("--port", default=NETSDR_TCP_PORT, type=int, help="TCP control port")
    parser.add_argument("--udp-port", default=NETSDR_UDP_PORT, type=int,
                        help="Local UDP port for IQ data")
    parser.add_argument("--freq", default=14250000, type=int, help="Receiver frequency in Hz")
    parser.add_argument("--channel", default=0, type=int, help="Receiver channel")
    parser.add_argument("--rate", default=100000, type=int, help="IQ output sample rate in Hz")
    parser.add_argument("--24bit", dest="wide", action="store_true",
                        help="Request 24-bit contiguous samples instead of 16-bit FIFO")
    parser.add_argument("--secs", default=5, type=int, help="Seconds to stream")
    parser.add_argument("--output", default="samples.bin", help="Sample output file")
    parser.add_argument("--timeout", default=5.0, type=float,
                        help="Seconds to wait for each control reply")
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging verbosity (default: INFO)')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    setup = ReceiverSetup(
        sample_rate=args.rate,
        capture_mode=CAPTURE_MODE_24BIT_CONTIG if args.wide else CAPTURE_MODE_16BIT_FIFO,
    )
    sink = SampleFileSink(args.output)
    client = NetSdrClient(
        tcp=NetSdrTCPClient(args.host, args.port),
        udp=NetSdrUDPReceiver(listen_port=args.udp_port),
        setup=setup,
        sample_sink=sink,
        response_timeout=args.timeout,
    )

    try:
        client.connect()
        if not client.connected:
            return 1
        client.change_frequency(args.freq, args.channel)
        client.start_streaming()
        time.sleep(args.secs)
        client.stop_streaming()
        log.info(f"Done. {sink.sample_count} samples written to {sink.path}, "
                 f"{client.missed_count} packets missed, "
                 f"{client.malformed_count} malformed")
    except ControlRequestTimeout as e:
        log.error(f"Receiver stopped answering: {e}")
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        client.disconnect()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
