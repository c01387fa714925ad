"""
Unit Tests for Pagination helpers
"""
from datetime import datetime, timedelta
import pytest
from pydantic import ValidationError
from sqlalchemy import select

from corpus_admin.models.dataset import Dataset
from corpus_admin.utils.pagination import PaginationParams, build_pagination, paginate, total_pages


class TestPaginationMath:
    """Test offset and page arithmetic"""

    def test_offset(self):
        assert PaginationParams(page=1, limit=10).offset == 0
        assert PaginationParams(page=3, limit=7).offset == 14

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
    def test_rejects_non_positive(self, page, limit):
        with pytest.raises(ValidationError):
            PaginationParams(page=page, limit=limit)

    def test_from_query_caps_limit(self):
        assert PaginationParams.from_query(2, 1000).limit == 100
        assert PaginationParams.from_query(2, 25).limit == 25

    @pytest.mark.parametrize("total,limit,expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (25, 10, 3)])
    def test_total_pages(self, total, limit, expected):
        assert total_pages(total, limit) == expected

    def test_build_pagination(self):
        assert build_pagination(2, 10, 25) == {
            "currentPage": 2,
            "totalPages": 3,
            "totalItems": 25,
            "itemsPerPage": 10,
        }


class TestPaginate:
    """Test paginate() against a real session"""

    async def test_second_page_of_twenty_five(self, db_session):
        base = datetime(2024, 1, 1)
        for i in range(25):
            db_session.add(Dataset(file_name=f"{i:03d}.cha", created_at=base + timedelta(minutes=i)))
        await db_session.commit()

        query = select(Dataset).order_by(Dataset.created_at.asc(), Dataset.id.asc())
        items, pagination = await paginate(db_session, query, PaginationParams(page=2, limit=10))

        assert [d.file_name for d in items] == [f"{i:03d}.cha" for i in range(10, 20)]
        assert pagination == {"currentPage": 2, "totalPages": 3, "totalItems": 25, "itemsPerPage": 10}

    async def test_page_past_the_end_is_empty(self, db_session):
        db_session.add(Dataset(file_name="only.cha"))
        await db_session.commit()

        items, pagination = await paginate(
            db_session, select(Dataset).order_by(Dataset.created_at), PaginationParams(page=5, limit=10)
        )

        assert items == []
        assert pagination["totalItems"] == 1
        assert pagination["totalPages"] == 1
