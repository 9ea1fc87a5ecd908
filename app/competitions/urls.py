"""
URL configuration for the competitions app.

All routes are prefixed with /api/v1/competitions/ when included in the main URLconf.
"""

from django.urls import path

from competitions import views

app_name = "competitions"

urlpatterns = [
    path(
        "<uuid:competition_id>/publish/",
        views.PublishCompetitionView.as_view(),
        name="publish",
    ),
]
