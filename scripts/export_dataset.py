"""Export one Gemma dataset (metadata, samples, expression, design) to a run directory."""

import logging
import sys
from datetime import datetime

from gemma_rest import GemmaClient, GemmaConfig, get_dataset_object
from gemma_rest.io_utils import create_run_dir, save_json, save_result


def main() -> None:
    """Fetch a dataset bundle and save each part as a run artifact."""
    # Keep requests' own connection logging out of the run log.
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # Dataset short name from the command line, GSE2018 when omitted.
    dataset = sys.argv[1] if len(sys.argv) > 1 else "GSE2018"

    start_time = datetime.now()
    client = GemmaClient(GemmaConfig.from_env())

    # One bundle call fans out to metadata, samples and expression endpoints.
    bundle = get_dataset_object(client, dataset, consolidate="pickmax")

    run_dir = create_run_dir("runs")
    metadata_path = save_result(bundle.metadata, run_dir / "metadata")
    samples_path = save_result(bundle.samples, run_dir / "samples")
    expression_path = save_result(bundle.expression, run_dir / "expression")
    design_path = save_result(bundle.design.reset_index(), run_dir / "design")
    bundle_path = save_result(bundle, run_dir / "bundle")

    # Compact run summary for quick auditing.
    end_time = datetime.now()
    summary = {
        "dataset": dataset,
        "samples": len(bundle.sample_names),
        "genes": len(bundle.expression),
        "started_at": start_time.isoformat(),
        "ended_at": end_time.isoformat(),
        "duration_seconds": (end_time - start_time).total_seconds(),
        "metadata_path": str(metadata_path),
        "samples_path": str(samples_path),
        "expression_path": str(expression_path),
        "design_path": str(design_path),
        "bundle_path": str(bundle_path),
    }
    save_json(summary, run_dir / "run_summary.json")
    logging.info("Exported %s (%d samples) to %s", dataset, summary["samples"], run_dir)


if __name__ == "__main__":
    main()
