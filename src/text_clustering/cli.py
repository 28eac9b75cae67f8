"""
Batch clustering of a JSON corpus.

Usage:
    python3 -m text_clustering corpus.json [--config clustering.yaml] [--seed 42] [--output result.json]

The corpus is a JSON list of scraps. Each scrap needs an "id" and either
a ready-made "text" or any of "title", "content", "keywords", "tags",
"auto_tags", "link_title", "link_description". "kind" defaults to "note".
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .config import ClusteringConfig
from .engine import ClusterEngine
from .models import Document

logger = logging.getLogger(__name__)


def document_from_dict(data: Dict[str, Any]) -> Document:
    """Build a Document from one corpus entry."""
    if not isinstance(data, dict) or 'id' not in data:
        raise ValueError(f"Scrap without id: {data!r}")

    doc_id = str(data['id'])
    kind = data.get('kind', 'note')

    if 'text' in data:
        text = data['text']
        if text is not None and not isinstance(text, str):
            raise ValueError(f"Scrap {doc_id} has non-string text: {text!r}")
        return Document(id=doc_id, text=text or '', kind=kind)

    return Document.from_parts(
        doc_id,
        kind=kind,
        title=data.get('title'),
        content=data.get('content'),
        keywords=data.get('keywords') or [],
        tags=data.get('tags') or [],
        auto_tags=data.get('auto_tags') or [],
        link_title=data.get('link_title'),
        link_description=data.get('link_description'),
    )


def load_documents(path: Path) -> List[Document]:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of scraps")

    return [document_from_dict(item) for item in data]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for batch clustering."""
    parser = argparse.ArgumentParser(
        description='Cluster a JSON corpus of scraps with TF-IDF and k-means'
    )
    parser.add_argument('corpus', type=Path, help='JSON list of scraps')
    parser.add_argument('--config', type=Path, help='YAML clustering config')
    parser.add_argument('--seed', type=int, help='Random seed for reproducible clusters')
    parser.add_argument('--output', type=Path, help='Write result JSON here instead of stdout')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = ClusteringConfig.from_yaml(args.config) if args.config else ClusteringConfig.from_env()
        if args.seed is not None:
            config = replace(config, random_state=args.seed)

        documents = load_documents(args.corpus)
    except (OSError, ValueError) as e:
        # ConfigError and json.JSONDecodeError are ValueErrors
        logger.error(f"Failed to load input: {e}")
        return 1

    logger.info(f"Loaded {len(documents)} scraps from {args.corpus}")

    engine = ClusterEngine(config)
    result = engine.rebuild_clusters(documents)

    if result.is_empty:
        logger.warning("Not enough data to form clusters yet")

    output = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.write_text(output + '\n', encoding='utf-8')
        logger.info(f"Wrote {len(result.clusters)} clusters to {args.output}")
    else:
        sys.stdout.write(output + '\n')

    return 0
