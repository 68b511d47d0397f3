"""CLI entry point for facematch.

Command-line interface over the feature extractor, the similarity scorer
and the face gallery. Detections are read from JSON files holding either
one detected face object or a list of them.

Usage:
    facematch extract DETECTIONS
    facematch compare FEATURES_A FEATURES_B
    facematch register IDENTIFIER NAME -i IMAGE -f DETECTIONS
    facematch recognize -f DETECTIONS
    facematch update IDENTIFIER -i IMAGE -f DETECTIONS
    facematch delete IDENTIFIER
    facematch list
    facematch api [--host HOST] [--port PORT]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_detections(path: str) -> list:
    """Load detected faces from a JSON file."""
    from .features import DetectedFace

    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    return [DetectedFace.from_dict(item) for item in data]


def read_image(path: Optional[str]) -> bytes:
    if not path:
        return b""
    return Path(path).read_bytes()


def build_service(args):
    """Create the face service backed by the configured database."""
    from .constants import get_storage_config
    from .service import FaceService
    from .storage import FaceDatabase

    db_path = args.database or get_storage_config().database_path
    return FaceService(FaceDatabase(db_path))


def _report(result) -> int:
    if result.ok:
        logger.info(result.message)
        return 0
    logger.error(f"{result.status.value}: {result.message}")
    return 1


def cmd_extract(args) -> int:
    """Print the serialized feature record of each detected face."""
    from .features import extract_face_features

    try:
        faces = load_detections(args.detections)
    except (OSError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Could not read detections: {e}")
        return 1

    logger.info(f"Loaded {len(faces)} face(s)")
    for face in faces:
        print(extract_face_features(face))
    return 0


def cmd_compare(args) -> int:
    """Score two serialized feature records read from files."""
    from .matching import SimilarityScorer

    try:
        features_a = Path(args.features_a).read_text()
        features_b = Path(args.features_b).read_text()
    except OSError as e:
        logger.error(f"Could not read features: {e}")
        return 1

    try:
        scorer = SimilarityScorer(args.scale)
    except ValueError as e:
        logger.error(f"Invalid scale: {e}")
        return 1

    comparison = scorer.compare(features_a, features_b)
    if not comparison.is_scorable:
        logger.warning(f"Not comparable: {comparison.status.value}")

    print(f"{comparison.score:.2f}")
    logger.info(
        f"status={comparison.status.value} "
        f"landmarks={comparison.matched_landmarks}"
    )
    return 0


def cmd_register(args) -> int:
    """Enroll a new identity."""
    service = build_service(args)
    try:
        faces = load_detections(args.detections) if args.detections else None
        result = service.register(
            args.identifier, args.name, read_image(args.image), faces=faces
        )
    except (OSError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return 1
    finally:
        service.shutdown()
    return _report(result)


def cmd_recognize(args) -> int:
    """Find the best matching enrolled identity."""
    service = build_service(args)
    try:
        faces = load_detections(args.detections) if args.detections else None
        result = service.recognize(read_image(args.image), faces=faces)
    except (OSError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return 1
    finally:
        service.shutdown()

    if result.ok:
        print(f"{result.entry.identifier}\t{result.entry.display_name}\t{result.similarity:.2f}")
    return _report(result)


def cmd_update(args) -> int:
    """Replace the photo of an enrolled identity."""
    service = build_service(args)
    try:
        faces = load_detections(args.detections) if args.detections else None
        result = service.update_photo(args.identifier, read_image(args.image), faces=faces)
    except (OSError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return 1
    finally:
        service.shutdown()
    return _report(result)


def cmd_delete(args) -> int:
    """Remove an enrolled identity."""
    service = build_service(args)
    try:
        result = service.delete(args.identifier)
    finally:
        service.shutdown()
    return _report(result)


def cmd_list(args) -> int:
    """List enrolled identities."""
    service = build_service(args)
    try:
        entries = service.list_faces()
    finally:
        service.shutdown()

    for entry in entries:
        print(f"{entry.identifier}\t{entry.display_name}\t{entry.timestamp}")
    logger.info(f"{len(entries)} face(s) registered")
    return 0


def cmd_api(args) -> int:
    """Start the HTTP API server."""
    try:
        import uvicorn

        from .api import create_app
        from .constants import get_api_config
    except ImportError as e:
        logger.error(f"Missing dependency: {e}")
        logger.info("Run: pip install -r requirements.txt")
        return 1

    api_config = get_api_config()
    host = args.host or api_config.host
    port = args.port or api_config.port

    app = create_app(service=build_service(args), debug=args.debug)

    logger.info(f"API: http://{host}:{port}")
    logger.info(f"Docs: http://{host}:{port}/docs")

    uvicorn.run(app, host=host, port=port, log_level="warning")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="facematch",
        description="Landmark based face matching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  facematch extract face.json                      Print a feature record
  facematch compare a.json b.json                  Score two records
  facematch register 12345678 "Ana" -i a.jpg -f a_faces.json
  facematch recognize -f query_faces.json          Search the gallery
  facematch api --port 8080                        Start API server
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Config file")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug logging")
    parser.add_argument("--database", help="SQLite database path (overrides config)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # extract
    extract_p = subparsers.add_parser("extract", help="Extract feature records")
    extract_p.add_argument("detections", help="Detections JSON file")

    # compare
    compare_p = subparsers.add_parser("compare", help="Compare two feature records")
    compare_p.add_argument("features_a", help="File with a serialized record")
    compare_p.add_argument("features_b", help="File with a serialized record")
    compare_p.add_argument("-s", "--scale", type=float, default=None,
                           help="Distance (px) at which similarity is 50")

    # register
    register_p = subparsers.add_parser("register", help="Enroll a new identity")
    register_p.add_argument("identifier", help="Unique identifier")
    register_p.add_argument("name", help="Display name")
    register_p.add_argument("-i", "--image", help="Photo file stored with the entry")
    register_p.add_argument("-f", "--detections", required=True, help="Detections JSON file")

    # recognize
    recog_p = subparsers.add_parser("recognize", help="Recognize a face")
    recog_p.add_argument("-i", "--image", help="Photo file")
    recog_p.add_argument("-f", "--detections", required=True, help="Detections JSON file")

    # update
    update_p = subparsers.add_parser("update", help="Replace an enrolled photo")
    update_p.add_argument("identifier", help="Enrolled identifier")
    update_p.add_argument("-i", "--image", help="New photo file")
    update_p.add_argument("-f", "--detections", required=True, help="Detections JSON file")

    # delete
    delete_p = subparsers.add_parser("delete", help="Remove an identity")
    delete_p.add_argument("identifier", help="Enrolled identifier")

    # list
    subparsers.add_parser("list", help="List enrolled identities")

    # api
    api_p = subparsers.add_parser("api", help="Start the HTTP API")
    api_p.add_argument("--host", help="Bind address (overrides config)")
    api_p.add_argument("--port", type=int, help="Port (overrides config)")

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.config:
        from .constants import get_config
        get_config().reload(Path(args.config))

    commands = {
        "extract": cmd_extract,
        "compare": cmd_compare,
        "register": cmd_register,
        "recognize": cmd_recognize,
        "update": cmd_update,
        "delete": cmd_delete,
        "list": cmd_list,
        "api": cmd_api,
    }

    sys.exit(commands[args.command](args))


if __name__ == "__main__":
    main()
