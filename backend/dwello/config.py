from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Dwello"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: str = "*"

    database_url: str = "sqlite:///./dwello.db"

    # Walrus blob store (publisher accepts writes, aggregator serves reads)
    walrus_publisher_url: str = "https://publisher.walrus-testnet.walrus.space"
    walrus_aggregator_url: str = "https://aggregator.walrus-testnet.walrus.space"
    walrus_store_path: str = "/v1/blobs"
    walrus_read_path: str = "/v1/blobs"
    walrus_epochs: int = 5
    walrus_timeout_seconds: float = 60.0
    # Probed in order; the publisher's response shape differs between versions.
    blob_id_fields: str = (
        "newlyCreated.blobObject.blobId,alreadyCertified.blobId,"
        "blobId,blob_id,id,cid,hash"
    )

    # Sui ledger
    sui_rpc_url: str = "https://fullnode.testnet.sui.io:443"
    sui_network: str = "testnet"
    sui_timeout_seconds: float = 15.0
    sui_page_limit: int = 50
    sui_max_pages: int = 20
    access_pass_type_marker: str = "AccessPass"
    caretaker_cap_type_marker: str = "CaretakerCap"
    listing_type_marker: str = "House"
    access_pass_listing_field: str = "house_id"

    # Uploads
    max_file_size_mb: int = 10
    allowed_content_types: str = (
        "image/jpeg,image/png,image/webp,image/gif,video/mp4,video/webm"
    )
    max_upload_files: int = 10
    max_bulk_verify: int = 50

    default_page_size: int = 12
    max_page_size: int = 100
    max_page: int = 1_000_000
    default_currency: str = "$"

    default_transaction_currency: str = "USD"
    max_transactions: int = 100

    model_config = {"env_file": ".env"}


settings = Settings()
