from fastapi import APIRouter
from app.api.v1.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.clients import router as clients_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.trainer_routines import router as trainer_routines_router
from app.api.v1.exercises import router as exercises_router
from app.api.v1.nutrition_plans import router as nutrition_plans_router
from app.api.v1.trainer import router as trainer_router
from app.api.v1.routines import router as routines_router
from app.api.v1.routine_templates import router as routine_templates_router
from app.api.v1.payments import router as payments_router
from app.api.v1.payment_reminders import router as payment_reminders_router
from app.api.v1.appointments import router as appointments_router
from app.api.v1.reminders import router as reminders_router
from app.api.v1.messages import router as messages_router
from app.api.v1.whatsapp import router as whatsapp_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(clients_router, prefix="/clients", tags=["clients"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
api_router.include_router(trainer_routines_router, prefix="/trainer/routines", tags=["trainer"])
api_router.include_router(exercises_router, prefix="/trainer/exercises", tags=["exercises"])
api_router.include_router(nutrition_plans_router, prefix="/trainer/nutrition-plans", tags=["nutrition"])
api_router.include_router(trainer_router, prefix="/trainer", tags=["trainer"])
api_router.include_router(routines_router, prefix="/routines", tags=["routines"])
api_router.include_router(routine_templates_router, prefix="/routine-templates", tags=["routine-templates"])
api_router.include_router(payments_router, prefix="/payments", tags=["payments"])
api_router.include_router(payment_reminders_router, prefix="/payment-reminders", tags=["payment-reminders"])
api_router.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
api_router.include_router(reminders_router, prefix="/reminders", tags=["reminders"])
api_router.include_router(messages_router, prefix="/messages", tags=["messages"])
api_router.include_router(whatsapp_router, prefix="/whatsapp", tags=["whatsapp"])
