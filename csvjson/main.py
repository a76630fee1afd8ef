from pathlib import Path

from prefect import flow

from csvjson.config import ConvertConfig
from csvjson.convert import Converter, ConvertReport
from csvjson.records.schema import Schema
from csvjson.sinks import S3ObjectSink
from csvjson.sources import S3ObjectSource, s3_client

# Column layout of the customers-N.csv sample files.
CUSTOMERS_SCHEMA = Path(__file__).parent / "schemas" / "customers.json"


@flow
def convert_object(  # noqa: PLR0913
    bucket: str,
    csv_key: str,
    json_key: str,
    schema_path: Path,
    *,
    has_header: bool = True,
    delimiter: str = ",",
    lazy_quotes: bool = False,
    endpoint: str | None = None,
    region: str | None = None,
    path_style: bool = False,
) -> ConvertReport:
    """Convert ``bucket/csv_key`` into a JSON array stored at ``bucket/json_key``.

    Credentials come from the usual boto3 chain (env vars, profile, ...). For
    MinIO pass its ``endpoint`` and ``path_style=True``.
    """
    client = s3_client(endpoint, region, path_style=path_style)
    converter = Converter(
        source=S3ObjectSource(client, bucket, csv_key),
        sink=S3ObjectSink(client, bucket, json_key),
        schema=Schema.from_json(Path(schema_path)),
        config=ConvertConfig(
            has_header=has_header,
            delimiter=delimiter,
            lazy_quotes=lazy_quotes,
        ),
    )
    return converter.convert()


if __name__ == "__main__":
    convert_object(
        bucket="test-warehouse",
        csv_key="customers-10.csv",
        json_key="customers-10.json",
        schema_path=CUSTOMERS_SCHEMA,
    )
