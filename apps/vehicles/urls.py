from django.urls import path
from . import views

app_name = 'vehicles'

urlpatterns = [
    # GET /api/vehicles/lookup/?vrm=AB12CDE - Make/model from DVSA (X-Dealer-Slug required)
    path('lookup/', views.vehicle_lookup, name='vehicle-lookup'),
]
