from django.urls import path
from . import views

app_name = 'dealers'

urlpatterns = [
    # POST   /api/dealers/                           - Create dealer (caller becomes owner)
    # GET    /api/dealers/mine/                      - Dealers the user belongs to
    # GET    /api/dealers/current/                   - Dealer named by X-Dealer-Slug
    # PATCH  /api/dealers/current/                   - Update sales settings (admin)
    # GET    /api/dealers/current/members/           - List members
    # POST   /api/dealers/current/members/           - Add member (admin)
    # DELETE /api/dealers/current/members/{user_id}/ - Remove member (admin)
    path('', views.dealer_create, name='dealer-create'),
    path('mine/', views.my_dealers, name='my-dealers'),
    path('current/', views.current_dealer, name='current-dealer'),
    path('current/members/', views.dealer_members, name='dealer-members'),
    path('current/members/<uuid:user_id>/', views.dealer_member_remove, name='dealer-member-remove'),
]
