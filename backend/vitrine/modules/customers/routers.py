# vitrine/modules/customers/routers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .models import CustomerCreate, CustomerInDB
from .repository import CustomerRepository, get_customer_repository

customers_router = APIRouter()


@customers_router.post("", response_model=CustomerInDB, status_code=status.HTTP_201_CREATED, summary="Create a customer", tags=["Customers"])
async def create_customer_endpoint(
    customer_in: CustomerCreate,
    repo: CustomerRepository = Depends(get_customer_repository),
):
    created = await repo.create(customer_in)
    return created


@customers_router.get("", response_model=List[CustomerInDB], summary="List customers, optionally by segment tag", tags=["Customers"])
async def list_customers_endpoint(
    segment: Optional[str] = Query(None, description="Tag de segmento"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    repo: CustomerRepository = Depends(get_customer_repository),
):
    query = {"segment": segment} if segment else {}
    customers = await repo.list_by(query=query, skip=skip, limit=limit)
    return customers
