from fastapi import APIRouter

from expense_approvals.api.approval_rules import approval_rules_router
from expense_approvals.api.expenses import expenses_router
from expense_approvals.api.reports import reports_router
from expense_approvals.api.users import users_router

api_router = APIRouter()
api_router.include_router(expenses_router)
api_router.include_router(approval_rules_router)
api_router.include_router(users_router)
api_router.include_router(reports_router)
