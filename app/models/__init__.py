from app.models.user import User, ClientProfile, TrainerProfile
from app.models.trainer_client import TrainerClient
from app.models.exercise import Exercise
from app.models.routine import Routine, RoutineAssignment, RoutineTemplate
from app.models.progress import Progress
from app.models.notification import Notification
from app.models.payment import Subscription, Payment, PaymentPreference, Invoice
from app.models.appointment import Appointment, Reminder
from app.models.message import Message
from app.models.nutrition_plan import NutritionPlan

__all__ = [
    "User", "ClientProfile", "TrainerProfile",
    "TrainerClient",
    "Exercise",
    "Routine", "RoutineAssignment", "RoutineTemplate",
    "Progress",
    "Notification",
    "Subscription", "Payment", "PaymentPreference", "Invoice",
    "Appointment", "Reminder",
    "Message",
    "NutritionPlan",
]
