"""
Poll a submission until its analysis finishes.

Usage:
    python -m dossier.commands.poll_submission <token>
    python -m dossier.commands.poll_submission <token> --base-url http://localhost:8080 --dossier
"""

import argparse
import logging
import sys

from ..client import DossierClient, DossierClientError, PollTimeout, UnknownToken

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("dossier.commands.poll_submission")


def main() -> int:
    parser = argparse.ArgumentParser(description="Wait for a submission's analysis")
    parser.add_argument("token", help="Access token returned at intake")
    parser.add_argument("--base-url", default="http://localhost:8080")
    parser.add_argument("--interval", type=float, default=3.0, help="Seconds between polls")
    parser.add_argument("--max-wait", type=float, default=120.0, help="Give up after this many seconds")
    parser.add_argument("--dossier", action="store_true", help="Print the dossier when completed")
    args = parser.parse_args()

    with DossierClient(args.base_url) as client:
        try:
            result = client.wait_for_terminal(args.token, interval=args.interval, max_wait=args.max_wait)
        except UnknownToken:
            logger.error("Unknown token")
            return 2
        except PollTimeout as e:
            logger.error(str(e))
            return 3
        except DossierClientError as e:
            logger.error(str(e))
            return 1

        if result["status"] == "failed":
            logger.error(result.get("message") or "Analysis failed")
            return 1

        logger.info(f"Completed with fit score {result.get('estimatedFitScore')}")
        if args.dossier:
            print(client.get_dossier(args.token))
    return 0


if __name__ == "__main__":
    sys.exit(main())
