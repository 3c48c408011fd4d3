"""
Staff administration and doctor schedules.

Account management is reserved for administrative roles.  A doctor's
weekly availability and leave days may be edited by an administrator
or by the doctor themselves; everyone on staff can read them.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.pagination import paginate
from hms.permissions import IsAdminRole, IsStaffRole
from hms.serializers.availability import AvailabilityReplaceSerializer, LeaveCreateSerializer
from hms.serializers.staff import (
    DoctorListQuerySerializer,
    StaffCreateSerializer,
    StaffListQuerySerializer,
    StaffUpdateSerializer,
)
from hms.services.staff import (
    add_leave,
    cached_doctor_list,
    create_staff,
    deactivate_staff,
    format_leave,
    format_staff,
    format_window,
    get_doctor,
    get_staff,
    remove_leave,
    replace_availability,
    search_staff,
    update_staff,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff(request):
    if request.method == 'POST':
        s = StaffCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = create_staff(s.validated_data, user=request.user)
        return Response({'ok': True, 'data': format_staff(user)}, status=status.HTTP_201_CREATED)

    q = StaffListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = search_staff(role=vd.get('role'), q=vd.get('q'), active=vd.get('active'))
    return Response(paginate(qs, vd, format_staff))


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff_detail(request, user_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_staff(get_staff(user_id))})
    if request.method == 'DELETE':
        return Response({'ok': True, 'data': format_staff(deactivate_staff(user_id, user=request.user))})

    s = StaffUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = update_staff(user_id, s.validated_data, user=request.user)
    return Response({'ok': True, 'data': format_staff(user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def doctors(request):
    """Active doctors, for booking forms.  Cached until a doctor account changes."""
    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = cached_doctor_list(specialization=q.validated_data.get('specialization'), q=q.validated_data.get('q'))
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaffRole])
def doctor_availability(request, doctor_id: int):
    doctor = get_doctor(doctor_id)
    if request.method == 'PUT':
        s = AvailabilityReplaceSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        rows = replace_availability(doctor, s.validated_data['windows'], user=request.user)
    else:
        rows = doctor.availabilities.all()
    windows = [format_window(w) for w in rows]
    return Response({'ok': True, 'data': {'doctorId': doctor.id, 'usesDefaultShifts': not windows,
                                          'windows': windows}})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def doctor_leaves(request, doctor_id: int):
    doctor = get_doctor(doctor_id)
    if request.method == 'POST':
        s = LeaveCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        leave = add_leave(doctor, date=s.validated_data['date'], reason=s.validated_data.get('reason', ''),
                          user=request.user)
        return Response({'ok': True, 'data': format_leave(leave)}, status=status.HTTP_201_CREATED)
    return Response({'ok': True, 'data': [format_leave(x) for x in doctor.leaves.all()]})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def doctor_leave_detail(request, doctor_id: int, leave_id: int):
    remove_leave(get_doctor(doctor_id), leave_id, user=request.user)
    return Response({'ok': True})
