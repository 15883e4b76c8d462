"""
OTA gateway entry point.
Runs one health check against every configured partner and logs the report.
"""

import asyncio
import json

from loguru import logger

from ota_gateway.services import close_ota_client, get_ota_client
from ota_gateway.settings import warn_missing_credentials


async def main() -> None:
    """Main function"""
    logger.info("Starting OTA gateway health check...")

    client = get_ota_client()
    warn_missing_credentials(client.settings)

    try:
        report = await client.health_check()
        logger.info(f"Overall status: {report['overall']}")
        for partner, result in report["partners"].items():
            logger.info(f"  {partner}: {result['status']}")
        logger.debug(json.dumps(report["metrics"], indent=2, default=str))

    except Exception as e:
        logger.error(f"Health check failed: {e}")
    finally:
        logger.info("Closing OTA client...")
        await close_ota_client()


if __name__ == "__main__":
    asyncio.run(main())
