#!/usr/bin/env python3

# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Entry point for the DS8K exporter.

Loads the target configuration, builds the resource collectors once and
serves Prometheus metrics over HTTP. Every scrape of the metrics path runs
a fresh DS8kCollector over the configured targets, or over the single
target named by the 'target' query parameter.
"""

import argparse
import logging
import os
import sys
from socketserver import ThreadingMixIn
from typing import Dict, List, Mapping, Optional, Sequence
from urllib.parse import parse_qs
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from dotenv import load_dotenv
from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST
from prometheus_client.gc_collector import GCCollector
from prometheus_client.platform_collector import PlatformCollector
from prometheus_client.process_collector import ProcessCollector

from ds8k_exporter import __version__
from ds8k_exporter.collectors.base import ResourceCollector
from ds8k_exporter.collectors.registry import ResourceCollectorRegistry, build_default_registry
from ds8k_exporter.config import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_METRICS_PATH,
    EnvConfig,
    Target,
    load_config,
    targets_for_request,
)
from ds8k_exporter.connection import TLS_MODES, Transport
from ds8k_exporter.exceptions import ConfigError, ExporterError
from ds8k_exporter.orchestrator import DS8kCollector

LOG = logging.getLogger(__name__)

FORMAT = '%(asctime)s - %(levelname)s - %(funcName)s - %(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%dT%H:%M:%SZ'

LANDING_PAGE = """<html>
<head><title>ds8k exporter</title></head>
<body>
<h1>ds8k exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def _http_response(start_response, status: str, headers, body: bytes):
    start_response(status, headers)
    return [body]


def _text(start_response, status: str, message: str):
    return _http_response(start_response, status,
                          [("Content-Type", "text/plain; charset=utf-8")],
                          message.encode("utf-8"))


class ExporterApp:
    """WSGI application exposing DS8K metrics."""

    def __init__(self, targets: Sequence[Target], collectors: Mapping[str, ResourceCollector],
                 location: Optional[str] = None, transport: Optional[Transport] = None,
                 metrics_path: str = DEFAULT_METRICS_PATH, include_exporter_metrics: bool = True,
                 **collector_kwargs):
        self.targets = list(targets)
        self.collectors = dict(collectors)
        self.location = location
        self.transport = transport
        self.metrics_path = metrics_path
        self.include_exporter_metrics = include_exporter_metrics
        self.collector_kwargs = collector_kwargs

    def __call__(self, environ, start_response):
        method = environ.get("REQUEST_METHOD", "GET").upper()
        path = environ.get("PATH_INFO", "/")

        if method != "GET":
            return _text(start_response, "403 Forbidden", "403 Forbidden\n")

        if path == self.metrics_path:
            return self._metrics(environ, start_response)

        if path == "/":
            body = LANDING_PAGE.format(metrics_path=self.metrics_path).encode("utf-8")
            return _http_response(start_response, "200 OK",
                                  [("Content-Type", "text/html; charset=utf-8")], body)

        return _text(start_response, "404 Not Found", "not found\n")

    def build_registry(self, targets: List[Target]) -> CollectorRegistry:
        """Create the per-request registry holding a DS8kCollector for the given targets."""
        registry = CollectorRegistry()
        registry.register(DS8kCollector(targets, self.collectors, location=self.location,
                                        transport=self.transport, **self.collector_kwargs))
        if self.include_exporter_metrics:
            ProcessCollector(registry=registry)
            PlatformCollector(registry=registry)
            GCCollector(registry=registry)
        return registry

    def _metrics(self, environ, start_response):
        params = parse_qs(environ.get("QUERY_STRING", ""))
        requested = (params.get("target") or [""])[0]
        try:
            targets = targets_for_request(self.targets, requested)
        except ConfigError as e:
            return _text(start_response, "400 Bad Request", f"{e}\n")

        try:
            output = generate_latest(self.build_registry(targets))
        except Exception as e:
            LOG.warning(f"Couldn't create metrics handler: {e}", exc_info=True)
            return _text(start_response, "500 Internal Server Error", f"Couldn't create metrics handler: {e}\n")

        return _http_response(start_response, "200 OK", [("Content-Type", CONTENT_TYPE_LATEST)], output)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        LOG.debug(f"{self.address_string()} - {format % args}")


def parse_listen_address(listen_address: str):
    """Split 'host:port' (host may be empty) into (host, port)."""
    host, _, port = listen_address.rpartition(':')
    return host.strip('[]'), int(port)


def configure_logging(loglevel: str, logfile: Optional[str] = None) -> None:
    log_level = getattr(logging, loglevel.upper())
    if logfile:
        logfile_dir = os.path.dirname(logfile) if os.path.dirname(logfile) else '.'
        if os.path.exists(logfile_dir) and os.access(logfile_dir, os.W_OK):
            logging.basicConfig(filename=logfile, level=log_level, format=FORMAT, datefmt=DATE_FORMAT)
            logging.info('Logging to file: ' + logfile)
        else:
            logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATE_FORMAT)
            logging.error(f'Logfile directory {logfile_dir} does not exist or is not writable')
            logging.warning('Falling back to console logging only')
    else:
        logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATE_FORMAT)

    # Never allow requests/urllib3 to log below INFO level, request logs could expose credentials
    requests_level = max(log_level, logging.INFO)
    logging.getLogger("requests").setLevel(level=requests_level)
    logging.getLogger("urllib3").setLevel(level=requests_level)


def build_parser(registry: ResourceCollectorRegistry) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prometheus exporter for IBM DS8000 storage systems")
    parser.add_argument('--config.file', dest='config_file', type=str, default=None,
        help=f'Path to configuration file. Default: {DEFAULT_CONFIG_FILE}')
    parser.add_argument('--web.listen-address', dest='listen_address', type=str, default=None,
        help=f'Address on which to expose metrics and web interface. Default: {DEFAULT_LISTEN_ADDRESS}')
    parser.add_argument('--web.telemetry-path', dest='metrics_path', type=str, default=None,
        help=f'Path under which to expose metrics. Default: {DEFAULT_METRICS_PATH}')
    parser.add_argument('--web.disable-exporter-metrics', dest='disable_exporter_metrics', action='store_true',
        help='Exclude metrics about the exporter itself (process_*, python_*).')
    parser.add_argument('--location', type=str, default=None,
        help='The location or timezone of the storage devices, for example: America/New_York')
    parser.add_argument('--tls-validation', dest='tls_validation', type=str, choices=TLS_MODES, default=None,
        help='TLS validation mode for the DS8K REST API. Default: none (DS8K HMCs use self-signed certificates).')
    parser.add_argument('--logfile', type=str, default=None,
        help='Path to log file. If not provided, logs to console only.')
    parser.add_argument('--loglevel', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO',
        help='Log level for both console and file output. Default: INFO')
    parser.add_argument('--version', action='version', version=f'ds8k_exporter {__version__}')

    for name in registry.names():
        state = "enabled" if registry.default_enabled(name) else "disabled"
        parser.add_argument(f'--collector.{name}', dest=f'collector_{name}',
                            action=argparse.BooleanOptionalAction, default=None,
                            help=f'Enable the {name} collector (default is {state}). '
                                 f'Use --no-collector.{name} to disable it.')
    return parser


def collector_switches(cmd: argparse.Namespace, registry: ResourceCollectorRegistry,
                       from_file: Mapping[str, bool]) -> Dict[str, bool]:
    """Merge collector switches; command line flags override the config file."""
    switches = dict(from_file)
    for name in registry.names():
        flag = getattr(cmd, f'collector_{name}', None)
        if flag is not None:
            switches[name] = flag
    return switches


def main(argv: Optional[List[str]] = None):
    load_dotenv()
    registry = build_default_registry()
    CMD = build_parser(registry).parse_args(argv)
    configure_logging(CMD.loglevel, CMD.logfile)

    env = EnvConfig()
    config_file = CMD.config_file or env.CONFIG_FILE or DEFAULT_CONFIG_FILE
    listen_address = CMD.listen_address or env.LISTEN_ADDRESS or DEFAULT_LISTEN_ADDRESS
    metrics_path = CMD.metrics_path or env.METRICS_PATH or DEFAULT_METRICS_PATH

    LOG.info(f"Loading config from {config_file}")
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        LOG.error(f"Error parsing config file: {e}")
        sys.exit(1)

    location = CMD.location or env.LOCATION or cfg.location
    if not location and any(not target.locale for target in cfg.targets):
        LOG.error("Please input the location of ds8k devices.")
        sys.exit(1)
    if not cfg.targets:
        LOG.warning("No targets configured, only exporter metrics will be served")

    tls_validation = CMD.tls_validation or env.TLS_VALIDATION or cfg.tls_validation
    try:
        transport = Transport(tls_validation=tls_validation, tls_ca=cfg.tls_ca,
                              timeout=cfg.timeout, connect_timeout=cfg.connect_timeout,
                              pool_size=max(len(cfg.targets), 1) * 2)
        collectors = registry.activate(collector_switches(CMD, registry, cfg.collectors))
    except (ExporterError, ValueError) as e:
        LOG.error(f"Couldn't create collector: {e}")
        sys.exit(1)

    LOG.info(f"Starting ds8k_exporter {__version__}")
    LOG.info("Enabled collectors:")
    for name in sorted(collectors):
        LOG.info(f" - {name}")

    app = ExporterApp(cfg.targets, collectors, location=location, transport=transport,
                      metrics_path=metrics_path,
                      include_exporter_metrics=not CMD.disable_exporter_metrics)

    host, port = parse_listen_address(listen_address)
    httpd = make_server(host, port, app, server_class=_ThreadingWSGIServer, handler_class=_QuietHandler)
    LOG.info(f"Listening for {metrics_path} on {listen_address}")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        LOG.info("Shutting down ds8k_exporter")
    finally:
        httpd.server_close()
        transport.close()


if __name__ == "__main__":
    main()
