"""
NewsRegistry Deploy Configuration
==================================
Deployment script for the NewsRegistry smart contract on Algorand TestNet.

Usage:
    algokit project deploy testnet

After successful deployment:
    1. Copy the printed App ID to your backend .env file as NEWS_REGISTRY_APP_ID
    2. The app account is funded for its minimum balance and the fees of the
       simulated read calls sent from it. Box storage is paid per submission.
"""

import logging

import algokit_utils

logger = logging.getLogger(__name__)

INITIAL_FUNDING = algokit_utils.AlgoAmount.from_algo(1)


def deploy() -> None:
    """Deploy or update the NewsRegistry contract on the configured network."""
    from smart_contracts.artifacts.news_registry.news_registry_client import (
        NewsRegistryFactory,
    )

    algorand = algokit_utils.AlgorandClient.from_environment()
    deployer_ = algorand.account.from_environment("DEPLOYER")

    factory = algorand.client.get_typed_app_factory(
        NewsRegistryFactory, default_sender=deployer_.address
    )

    # Idempotent deploy:
    # - If no app exists: creates it
    # - If schema changed: appends a new app (safe upgrade)
    # - If logic changed but schema unchanged: updates in place
    app_client, result = factory.deploy(
        on_update=algokit_utils.OnUpdate.AppendApp,
        on_schema_break=algokit_utils.OnSchemaBreak.AppendApp,
    )

    if result.operation_performed in (
        algokit_utils.OperationPerformed.Create,
        algokit_utils.OperationPerformed.Replace,
    ):
        algorand.send.payment(
            algokit_utils.PaymentParams(
                amount=INITIAL_FUNDING,
                sender=deployer_.address,
                receiver=app_client.app_address,
            )
        )

    logger.info(
        f"Deployed NewsRegistry app {app_client.app_name} "
        f"(app_id={app_client.app_id}); set NEWS_REGISTRY_APP_ID={app_client.app_id}"
    )
