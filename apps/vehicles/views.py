from django.apps import apps
from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.dealers.permissions import IsDealerMember
from apps.vehicles.services import MOTLookupConfigurationError, normalize_vrm


class VehicleSummarySerializer(serializers.Serializer):
    vrm = serializers.CharField()
    make = serializers.CharField(allow_null=True)
    model = serializers.CharField(allow_null=True)


def get_mot_client():
    return apps.get_app_config('vehicles').mot_client


@extend_schema(
    parameters=[OpenApiParameter('vrm', str, required=True, description='Vehicle registration')],
    responses={200: VehicleSummarySerializer},
    description="Look up make and model for a registration via the DVSA MOT API.",
    tags=['vehicles'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDealerMember])
def vehicle_lookup(request):
    """Look up a vehicle by VRM."""
    vrm = normalize_vrm(request.query_params.get('vrm', ''))
    if vrm is None:
        return Response(
            {'error': 'vrm must be 2-8 characters'},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        vehicle = get_mot_client().lookup_vehicle(vrm)
    except MOTLookupConfigurationError as e:
        return Response({'error': str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    if vehicle is None:
        return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = VehicleSummarySerializer({'vrm': vrm, 'make': vehicle.make, 'model': vehicle.model})
    return Response(serializer.data)
