"""Client for the VEDA workflows API (dataset validation, publication and ingestion)"""

from typing import Any, Dict, Optional, Union

from veda_client import validators
from veda_client.client import BaseClient
from veda_client.monitoring import logger
from veda_client.schemas import (
    AnyDataset,
    DashboardCollection,
    Ingestion,
    ListIngestionResponse,
    S3Input,
    Status,
    WorkflowExecutionResponse,
)

DatasetBody = Union[AnyDataset, Dict[str, Any]]


def _payload(dataset: DatasetBody) -> Dict[str, Any]:
    if isinstance(dataset, dict):
        return dataset
    return dataset.to_payload()


class WorkflowsClient(BaseClient):
    """
    Dataset publication goes through two calls: `/dataset/validate` checks the
    definition server side, `/dataset/publish` creates the collection and
    starts discovery of the items. Both require a bearer token.
    """

    api = "workflows"

    def validate_dataset(self, dataset: DatasetBody) -> Dict[str, Any]:
        """Validate a dataset definition with the workflows API"""
        body = _payload(dataset)
        logger.info("Validating dataset", extra={"collection": body.get("collection")})
        return self.post_json("dataset", "validate", body=body)

    def publish_dataset(self, dataset: DatasetBody) -> Dict[str, Any]:
        """Publish a dataset definition, creating its collection and items"""
        body = _payload(dataset)
        logger.info("Publishing dataset", extra={"collection": body.get("collection")})
        return self.post_json("dataset", "publish", body=body)

    def check_sources(self, dataset: AnyDataset) -> None:
        """Make sure s3 discovery items and http(s) sample files are readable"""
        for item in dataset.discovery_items:
            if isinstance(item, S3Input):
                validators.s3_bucket_object_is_accessible(
                    bucket=item.bucket, prefix=item.prefix, zarr_store=item.zarr_store
                )
        # sample files are third-party URLs, the workflows token is not sent
        for href in getattr(dataset, "sample_files", None) or []:
            if href.startswith(("http://", "https://")):
                validators.url_is_accessible(href)

    def get_workflow_execution(self, execution_id: str) -> WorkflowExecutionResponse:
        """Status of a discovery workflow started by a publication"""
        return WorkflowExecutionResponse.model_validate(
            self.get_json("discover", execution_id)
        )

    def publish_collection(
        self, collection: Union[DashboardCollection, Dict[str, Any]]
    ) -> Any:
        """Publish a STAC collection directly"""
        if isinstance(collection, dict):
            collection = DashboardCollection.model_validate(collection)
        body = collection.model_dump(mode="json", by_alias=True, exclude_none=True)
        logger.info("Publishing collection", extra={"collection": collection.id})
        return self.post_json("collections", body=body)

    def delete_collection(self, collection_id: str) -> Any:
        return self.request("DELETE", self.url("collections", collection_id)).json()

    def create_ingestion(self, item: Dict[str, Any]) -> Ingestion:
        """Queue a STAC item for ingestion"""
        logger.info("Queueing item ingestion", extra={"item": item.get("id")})
        return Ingestion.model_validate(self.post_json("ingestions", body=item))

    def get_ingestion(self, ingestion_id: str) -> Ingestion:
        return Ingestion.model_validate(self.get_json("ingestions", ingestion_id))

    def list_ingestions(
        self,
        status: Status = Status.queued,
        limit: Optional[int] = None,
        next: Optional[str] = None,
    ) -> ListIngestionResponse:
        params = {"status": Status(status).value}
        if limit:
            params["limit"] = limit
        if next:
            params["next"] = next
        return ListIngestionResponse.model_validate(
            self.get_json("ingestions", params=params)
        )
