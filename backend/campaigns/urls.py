from django.urls import path

from . import views

urlpatterns = [
    path('pixel/', views.open_pixel, name='campaign-pixel'),
    path('click/', views.click_redirect, name='campaign-click'),
    path('stats/', views.campaign_stats, name='campaign-stats'),
]
