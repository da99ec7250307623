from fastapi import APIRouter

from vacation_service.api.balances import balances_router, employee_balance_router
from vacation_service.api.bookings import bookings_router, employee_bookings_router
from vacation_service.api.collectives import collectives_router
from vacation_service.api.employees import employees_router
from vacation_service.api.periods import periods_router
from vacation_service.api.reports import reports_router

api_router = APIRouter()
api_router.include_router(employees_router)
api_router.include_router(periods_router)
api_router.include_router(employee_balance_router)
api_router.include_router(balances_router)
api_router.include_router(bookings_router)
api_router.include_router(employee_bookings_router)
api_router.include_router(collectives_router)
api_router.include_router(reports_router)
