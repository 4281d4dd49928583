"""Command line entry point for the Tag Interrogator project."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import AppConfig, BackendKind, Interrogator, SettingsStore, present
from .io.images import encode_image_file
from .io.sidecar import ResultSidecarWriter, presentation_metadata
from .models.base import ConfigurationError, InterrogationResult, NetworkError
from .models.captioner import OllamaCaptioner
from .tags.categories import TagCategoryDatabase, TagCategoryResolver


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tag Interrogator")
    parser.add_argument("image", nargs="?", type=Path, help="Image file to interrogate.")
    parser.add_argument(
        "--backend",
        choices=[kind.value for kind in BackendKind],
        help="Override the configured backend.",
    )
    parser.add_argument("--config", type=Path, help="Load settings from this YAML/JSON file.")
    parser.add_argument("--top-k", type=int, help="Maximum number of tags to keep.")
    parser.add_argument("--randomize", action="store_true", help="Shuffle the kept tags.")
    parser.add_argument(
        "--remove-underscores",
        action="store_true",
        help="Display tag names with spaces.",
    )
    parser.add_argument(
        "--caption",
        action="store_true",
        help="Also request a natural language description.",
    )
    parser.add_argument(
        "--sidecar",
        action="store_true",
        help="Write the result to a YAML sidecar next to the image.",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Save the effective settings (without the API key) as the user default.",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print vision-capable models served by the captioner and exit.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def _load_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig.load(args.config) if args.config else SettingsStore().load()
    updates: dict[str, object] = {}
    if args.backend:
        updates["backend"] = BackendKind(args.backend)
    if args.top_k is not None:
        updates["top_k"] = args.top_k
    if args.randomize:
        updates["randomize"] = True
    if args.remove_underscores:
        updates["remove_underscores"] = True
    if updates:
        config = AppConfig.model_validate({**config.model_dump(), **updates})
    return config


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    if args.save_config:
        saved_path = SettingsStore().save(config)
        sys.stderr.write(f"Saved settings to {saved_path}\n")
        if args.image is None and not args.list_models:
            return

    if args.list_models:
        captioner = OllamaCaptioner(
            config.captioner_endpoint,
            config.captioner_model,
            timeout=config.request_timeout,
        )
        try:
            models = captioner.discover_vision_models()
        finally:
            captioner.close()
        json.dump(models, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    if args.image is None:
        parser.error("an image path is required.")

    database = TagCategoryDatabase.from_location(config.tag_database)
    resolver = TagCategoryResolver(database)

    try:
        image = encode_image_file(args.image)
        with Interrogator(config.backend_config(), resolver=resolver) as interrogator:
            result = interrogator.interrogate(image)
            if args.caption and result.natural_description is None:
                result = InterrogationResult.build(
                    result.tags,
                    natural_description=interrogator.caption(image),
                    warnings=result.warnings,
                )
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    except ConfigurationError as exc:
        sys.stderr.write(f"Configuration error: {exc}\n")
        raise SystemExit(2) from exc
    except NetworkError as exc:
        sys.stderr.write(f"Interrogation failed: {exc}\n")
        raise SystemExit(1) from exc

    presentation = present(result, config.tagging_settings())
    metadata = presentation_metadata(args.image, presentation, backend=config.backend.value)
    output = {**metadata, "warnings": list(result.warnings)}

    if args.sidecar:
        sidecar_path = ResultSidecarWriter().write(args.image, metadata)
        output["sidecar_path"] = str(sidecar_path)

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":  # pragma: no cover
    main()
