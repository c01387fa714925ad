"""
Dataset endpoints

Every response goes through transform_dataset(), so clients always get the
normalized shape regardless of how the stored document looks.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime

from corpus_admin.core.config import settings
from corpus_admin.core.database import get_db
from corpus_admin.core.exceptions import DatasetNotFoundError, InvalidIdentifierError
from corpus_admin.core.logging_config import logger
from corpus_admin.core.types import is_valid_uuid
from corpus_admin.models.dataset import Dataset
from corpus_admin.models.user import User
from corpus_admin.modules.auth.dependencies import get_current_user
from corpus_admin.schemas.dataset import DatasetCreate, DatasetUpdate
from corpus_admin.services.dataset_transform import transform_dataset, transform_datasets
from corpus_admin.utils.pagination import PaginationParams, paginate


router = APIRouter()


async def get_dataset_or_404(db: AsyncSession, dataset_id: str) -> Dataset:
    """Load a dataset row; 400 for a malformed id, 404 when it does not exist"""
    if not is_valid_uuid(dataset_id):
        raise InvalidIdentifierError("Dataset", dataset_id)

    result = await db.execute(select(Dataset).where(Dataset.id == dataset_id))
    dataset = result.scalar_one_or_none()
    if dataset is None:
        raise DatasetNotFoundError(dataset_id)
    return dataset


@router.get("")
async def list_datasets(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List datasets, oldest first, one page at a time"""
    query = select(Dataset).order_by(Dataset.created_at.asc(), Dataset.id.asc())
    datasets, pagination = await paginate(db, query, PaginationParams.from_query(page, limit))

    return {
        "datasets": transform_datasets([d.to_document() for d in datasets]),
        "pagination": pagination,
    }


@router.get("/{dataset_id}")
async def get_dataset(
    dataset_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single normalized dataset"""
    dataset = await get_dataset_or_404(db, dataset_id)
    return {"dataset": transform_dataset(dataset.to_document())}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_dataset(
    payload: DatasetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a dataset from a nested or flat JSON document"""
    now = datetime.utcnow()
    dataset = Dataset(
        file_name=payload.file_name,
        dataset_metadata=payload.build_metadata() or {},
        utterances=payload.utterance_documents() or [],
        created_at=now,
        updated_at=now,
    )
    db.add(dataset)
    await db.commit()

    logger.info(
        f"[Datasets] Created dataset {dataset.id} ({dataset.file_name})",
        extra={"event_type": "dataset_created", "dataset_id": str(dataset.id)}
    )

    return {
        "id": str(dataset.id),
        "message": "Dataset created successfully",
        "dataset": transform_dataset(dataset.to_document()),
    }


@router.put("/{dataset_id}")
async def update_dataset(
    dataset_id: str,
    payload: DatasetUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update only the fields present in the body"""
    dataset = await get_dataset_or_404(db, dataset_id)

    if "file_name" in payload.model_fields_set:
        dataset.file_name = payload.file_name

    metadata = payload.build_metadata(current=dataset.dataset_metadata)
    if metadata is not None:
        dataset.dataset_metadata = metadata

    utterances = payload.utterance_documents()
    if utterances is not None:
        dataset.utterances = utterances

    dataset.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(
        f"[Datasets] Updated dataset {dataset.id}",
        extra={"event_type": "dataset_updated", "dataset_id": str(dataset.id)}
    )

    return {
        "message": "Dataset updated successfully",
        "dataset": transform_dataset(dataset.to_document()),
    }


@router.delete("/{dataset_id}")
async def delete_dataset(
    dataset_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a dataset"""
    dataset = await get_dataset_or_404(db, dataset_id)

    await db.delete(dataset)
    await db.commit()

    logger.info(
        f"[Datasets] Deleted dataset {dataset_id}",
        extra={"event_type": "dataset_deleted", "dataset_id": dataset_id}
    )

    return {"message": "Dataset deleted successfully"}
