"""
Staff accounts and doctor schedules.

Weekly availability is replaced as a whole: the submitted list of
windows becomes the doctor's schedule.  An empty list removes every
window, which puts the doctor back on the clinic's default shifts.
"""
import logging

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q
from rest_framework.exceptions import PermissionDenied, ValidationError

from hms.exceptions import NotFound
from hms.models import DoctorAvailability, DoctorLeave, User
from hms.permissions import is_admin
from hms.services.audit import log_action

logger = logging.getLogger(__name__)

# request field -> model field
STAFF_FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'phone': 'phone',
    'specialization': 'specialization',
    'isActive': 'is_active',
}


def get_staff(user_id) -> User:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound('Staff member not found.', resource='staff', id=user_id)
    return user


def get_doctor(doctor_id) -> User:
    doctor = User.objects.filter(pk=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise NotFound('Doctor not found.', resource='doctor', id=doctor_id)
    return doctor


def create_staff(data: dict, *, user) -> User:
    email = data['email']
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError({'email': ['A user with this email already exists.']})
    try:
        staff = User.objects.create_user(
            username=email,
            email=email,
            password=data['password'],
            first_name=data['firstName'],
            last_name=data['lastName'],
            role=data['role'],
            phone=data.get('phone', ''),
            specialization=data.get('specialization', ''),
            is_active=data.get('isActive', True),
        )
    except IntegrityError:
        raise ValidationError({'email': ['A user with this email already exists.']})
    log_action(user=user, action='staff.create', object_type='user', object_id=staff.id,
               detail={'role': staff.role})
    if staff.role == User.ROLE_DOCTOR:
        invalidate_doctor_cache()
    logger.info('staff %s created with role %s', staff.id, staff.role)
    return staff


def update_staff(user_id, data: dict, *, user) -> User:
    staff = get_staff(user_id)
    if data.get('isActive') is False:
        _ensure_not_self(staff, user)
    fields = {STAFF_FIELD_MAP[k]: v for k, v in data.items()}
    for name, value in fields.items():
        setattr(staff, name, value)
    if fields:
        staff.save(update_fields=list(fields) + ['updated_at'])
        if staff.role == User.ROLE_DOCTOR:
            invalidate_doctor_cache()
    log_action(user=user, action='staff.update', object_type='user', object_id=staff.id,
               detail={'fields': sorted(data)})
    return staff


def _ensure_not_self(staff: User, actor) -> None:
    if staff.pk == getattr(actor, 'pk', None):
        raise PermissionDenied('You cannot deactivate your own account.')


def deactivate_staff(user_id, *, user) -> User:
    staff = get_staff(user_id)
    _ensure_not_self(staff, user)
    if staff.is_active:
        staff.is_active = False
        staff.save(update_fields=['is_active', 'updated_at'])
        if staff.role == User.ROLE_DOCTOR:
            invalidate_doctor_cache()
        log_action(user=user, action='staff.deactivate', object_type='user', object_id=staff.id)
    return staff


def search_staff(*, role=None, q=None, active=None):
    qs = User.objects.all()
    if role:
        qs = qs.filter(role=role)
    if active is not None:
        qs = qs.filter(is_active=active)
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q))
    return qs.order_by('last_name', 'first_name', 'id')


def active_doctors(*, specialization=None, q=None):
    qs = User.objects.filter(role=User.ROLE_DOCTOR, is_active=True)
    if specialization:
        qs = qs.filter(specialization__iexact=specialization)
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q))
    return qs.order_by('last_name', 'first_name', 'id')


def ensure_can_manage_schedule(actor, doctor: User) -> None:
    if is_admin(actor) or actor.pk == doctor.pk:
        return
    raise PermissionDenied('Only administrators or the doctor may change this schedule.')


@transaction.atomic
def replace_availability(doctor: User, windows: list[dict], *, user) -> list[DoctorAvailability]:
    ensure_can_manage_schedule(user, doctor)
    DoctorAvailability.objects.filter(doctor=doctor).delete()
    rows = DoctorAvailability.objects.bulk_create([
        DoctorAvailability(
            doctor=doctor, day_of_week=w['dayOfWeek'], start_time=w['startTime'],
            end_time=w['endTime'], is_available=w.get('isAvailable', True),
        )
        for w in windows
    ])
    log_action(user=user, action='availability.replace', object_type='user', object_id=doctor.id,
               detail={'windows': len(rows)})
    return list(DoctorAvailability.objects.filter(doctor=doctor))


def add_leave(doctor: User, *, date, reason='', user) -> DoctorLeave:
    ensure_can_manage_schedule(user, doctor)
    if DoctorLeave.objects.filter(doctor=doctor, date=date).exists():
        raise ValidationError({'date': ['Leave already recorded for this day.']})
    leave = DoctorLeave.objects.create(doctor=doctor, date=date, reason=reason or '')
    log_action(user=user, action='leave.add', object_type='user', object_id=doctor.id,
               detail={'date': date.isoformat()})
    return leave


def remove_leave(doctor: User, leave_id, *, user) -> None:
    ensure_can_manage_schedule(user, doctor)
    leave = DoctorLeave.objects.filter(pk=leave_id, doctor=doctor).first()
    if leave is None:
        raise NotFound('Leave not found.', resource='leave', id=leave_id)
    day = leave.date
    leave.delete()
    log_action(user=user, action='leave.remove', object_type='user', object_id=doctor.id,
               detail={'date': day.isoformat()})


def format_staff(u: User) -> dict:
    return {
        'id': u.id,
        'email': u.email,
        'firstName': u.first_name,
        'lastName': u.last_name,
        'name': u.get_full_name() or u.email,
        'role': u.role,
        'phone': u.phone,
        'specialization': u.specialization,
        'isActive': u.is_active,
        'lastLogin': u.last_login.isoformat() if u.last_login else None,
        'dateJoined': u.date_joined.isoformat(),
    }


def format_window(w: DoctorAvailability) -> dict:
    return {
        'id': w.id,
        'dayOfWeek': w.day_of_week,
        'startTime': w.start_time.strftime('%H:%M'),
        'endTime': w.end_time.strftime('%H:%M'),
        'isAvailable': w.is_available,
    }


def format_leave(leave: DoctorLeave) -> dict:
    return {'id': leave.id, 'date': leave.date.isoformat(), 'reason': leave.reason}


DOCTORS_CACHE_TTL = 300


def _doctors_version() -> int:
    return cache.get_or_set('doctors:ver', 1, None)


def invalidate_doctor_cache() -> None:
    try:
        cache.incr('doctors:ver')
    except ValueError:
        cache.set('doctors:ver', 2, None)


def cached_doctor_list(*, specialization=None, q=None) -> list[dict]:
    key = f"doctors:v={_doctors_version()}:s={(specialization or '').lower()}:q={q or ''}"
    data = cache.get(key)
    if data is None:
        data = [format_staff(u) for u in active_doctors(specialization=specialization, q=q)]
        cache.set(key, data, DOCTORS_CACHE_TTL)
    return data
