"""ingress2traefik — convert rendered Ingress manifests to Traefik middlewares.yaml + ingressroutes.yaml."""

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml

from ingress2traefik.core.convert import convert, group_by_kind

_GENERATED_HEADER = "# Generated by ingress2traefik — review warnings before applying\n"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_manifests(rendered_dir: str) -> dict[str, list[dict]]:
    """Load all YAML files from rendered_dir, classify by kind."""
    documents: list[dict] = []
    rendered = Path(rendered_dir)
    files = sorted(list(rendered.rglob("*.yaml")) + list(rendered.rglob("*.yml")))
    for yaml_file in files:
        with open(yaml_file, encoding="utf-8") as f:
            documents.extend(yaml.safe_load_all(f))
    return group_by_kind(documents)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def load_config(path: str) -> dict:
    """Load ingress2traefik.yaml or return empty config."""
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    else:
        cfg = {}
    cfg.setdefault("ingress2traefikVersion", "v1")
    cfg.setdefault("exclude", [])
    cfg.setdefault("middlewaresFile", "middlewares.yaml")
    cfg.setdefault("ingressRoutesFile", "ingressroutes.yaml")
    return cfg


def save_config(path: str, config: dict) -> None:
    """Write ingress2traefik.yaml."""
    header = "# Configuration descriptor for ingress2traefik\n\n"
    # Ensure version key comes first
    ordered = {"ingress2traefikVersion": config.get("ingress2traefikVersion", "v1")}
    for k, v in config.items():
        if k != "ingress2traefikVersion":
            ordered[k] = v
    with open(path, "w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(ordered, f, default_flow_style=False, sort_keys=False)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def write_manifests(objects: list[dict], output_dir: str, filename: str) -> str | None:
    """Write objects as a multi-document YAML file. Returns the path, None if empty."""
    if not objects:
        return None
    path = os.path.join(output_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        f.write(_GENERATED_HEADER)
        yaml.dump_all(objects, f, default_flow_style=False, sort_keys=False,
                      explicit_start=True)
    print(f"Wrote {path}", file=sys.stderr)
    return path


def emit_warnings(warnings: list[str]) -> None:
    """Print all warnings to stderr."""
    for w in warnings:
        print(f"⚠ {w}", file=sys.stderr)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Convert ingress-nginx Ingress manifests to Traefik Middlewares and IngressRoutes"
    )
    parser.add_argument(
        "--from-dir", required=True,
        help="Directory of rendered Kubernetes YAML to read (searched recursively)",
    )
    parser.add_argument(
        "--output-dir", default=".",
        help="Where to write middlewares.yaml, ingressroutes.yaml, and ingress2traefik.yaml (default: .)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log each converter as it runs",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not os.path.isdir(args.from_dir):
        print(f"Input directory not found: {args.from_dir}", file=sys.stderr)
        return 1
    os.makedirs(args.output_dir, exist_ok=True)

    # Step 1: parse
    manifests = parse_manifests(args.from_dir)
    kinds = {k: len(v) for k, v in manifests.items()}
    print(f"Parsed manifests: {kinds}", file=sys.stderr)
    if not manifests.get("Ingress"):
        print("No Ingress manifests found — nothing to convert.", file=sys.stderr)
        return 1

    # Step 2: load config
    config_path = os.path.join(args.output_dir, "ingress2traefik.yaml")
    config = load_config(config_path)

    # Step 3: convert
    middlewares, ingress_routes, warnings = convert(manifests, config)

    # Step 4: emit warnings
    emit_warnings(warnings)

    # Step 5: write outputs
    write_manifests(middlewares, args.output_dir, config["middlewaresFile"])
    write_manifests(ingress_routes, args.output_dir, config["ingressRoutesFile"])
    save_config(config_path, config)
    print(f"Wrote {config_path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
