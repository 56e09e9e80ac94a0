# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    get_database_url,
    get_admin_database_url,
)
from clients.postgres_client import PostgresClient, PostgresTransaction
