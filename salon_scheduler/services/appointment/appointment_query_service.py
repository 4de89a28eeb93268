# ============================================================================
# salon_scheduler/services/appointment/appointment_query_service.py
# Read-side queries - no FastAPI dependencies
# ============================================================================
from sqlalchemy.orm import Session, joinedload, selectinload
from datetime import datetime, date, time
from typing import Optional, Dict, Any
from uuid import UUID

from salon_scheduler.core.exceptions import NotFoundError
from salon_scheduler.models.appointment import Appointment, AppointmentService
from salon_scheduler.services.appointment.status_service import parse_status


def _with_details(query):
    return query.options(
        joinedload(Appointment.client),
        selectinload(Appointment.services).joinedload(AppointmentService.staff),
        selectinload(Appointment.services).joinedload(AppointmentService.service),
        selectinload(Appointment.group_participants),
    )


class AppointmentQueryService:
    """Lookups and listings of appointments"""

    @staticmethod
    def get_appointment(
            db: Session,
            appointment_id: UUID,
            business_id: Optional[UUID] = None
    ) -> Appointment:
        """Appointment with client, lines and participants loaded"""
        query = _with_details(db.query(Appointment)).filter(Appointment.id == appointment_id)
        if business_id is not None:
            query = query.filter(Appointment.business_id == business_id)

        appointment = query.first()
        if not appointment:
            raise NotFoundError.for_resource("Appointment")
        return appointment

    @staticmethod
    def list_appointments(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            staff_id: Optional[UUID] = None,
            client_id: Optional[UUID] = None,
            page: int = 1,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Paginated appointments of a business, earliest first"""
        query = db.query(Appointment).filter(Appointment.business_id == business_id)

        if start_date:
            query = query.filter(Appointment.start_time >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Appointment.start_time <= datetime.combine(end_date, time.max))
        if status:
            query = query.filter(Appointment.status == parse_status(status))
        if staff_id:
            query = query.filter(
                Appointment.services.any(AppointmentService.staff_id == staff_id)
            )
        if client_id:
            query = query.filter(Appointment.client_id == client_id)

        total = query.count()
        appointments = (
            _with_details(query)
            .order_by(Appointment.start_time.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "appointments": appointments,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0,
            },
        }
