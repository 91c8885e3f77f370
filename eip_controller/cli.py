"""Argument parsing, configuration loading, and controller bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .cloud.aws_client import AWSClient
from .cloud.metadata import InstanceMetadataClient
from .config import AppConfig, apply_overrides, load_config, validate_config
from .daemon import Daemon
from .elastic_ip import ElasticIPController
from .exceptions import ConfigError, EIPControllerError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def _split_ips(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated --eip values."""
    ips: list[str] = []
    for value in values or []:
        ips.extend(part.strip() for part in value.split(",") if part.strip())
    return ips


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eip-controller",
        description="Keeps a pool of AWS elastic IPs assigned to running cluster instances",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to an optional YAML configuration file",
    )
    parser.add_argument(
        "--cluster-id",
        help="Cluster identifier (defaults to the cluster tag of the local instance)",
    )
    parser.add_argument(
        "--eip",
        action="append",
        metavar="IP",
        help="Elastic IP to assign; repeat or comma-separate for several",
    )
    parser.add_argument(
        "--sync-period",
        type=int,
        metavar="SECONDS",
        help="Relist and reconcile cloud resources this often",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation pass and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration and exit",
    )
    return parser


def build_gateway(config: AppConfig) -> AWSClient:
    """Construct the AWS client, filling region and cluster id from instance metadata when unset."""
    aws = config.aws
    region = aws.region
    cluster_id = config.controller.cluster_id

    metadata: InstanceMetadataClient | None = None
    if not region or not cluster_id:
        if not aws.use_instance_metadata:
            if not region:
                raise ConfigError("aws.region must be set when instance metadata is disabled")
            raise ConfigError("cluster-id flag must be set")
        metadata = InstanceMetadataClient(timeout=aws.metadata_timeout)

    if not region:
        region = metadata.region()

    client = AWSClient(aws, region=region, cluster_id=cluster_id)

    if not cluster_id:
        instance_id = metadata.instance_id()
        cluster_id = client.instance_tags(instance_id).get(aws.cluster_tag, "")
        if not cluster_id:
            raise ConfigError(
                f"cluster-id flag must be set (tag {aws.cluster_tag!r} not found on instance {instance_id})"
            )
        client.cluster_id = cluster_id

    logger.info("ClusterID is %s", cluster_id)
    return client


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config) if args.config else AppConfig()
        config = apply_overrides(
            config,
            cluster_id=args.cluster_id,
            elastic_ips=_split_ips(args.eip),
            interval_seconds=args.sync_period,
        )
        validate_config(config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    try:
        gateway = build_gateway(config)
        controller = ElasticIPController.create(gateway, config.controller)
    except EIPControllerError as exc:
        logger.error("Error building elastic ip controller: %s", exc)
        return 1

    daemon = Daemon(controller, config.polling)

    try:
        if args.once:
            logger.info("Running single reconciliation pass (--once)")
            daemon.run_once()
        else:
            daemon.run()
    except EIPControllerError as exc:
        logger.error("Fatal error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0

    return 0
