from modules.core.urls import admin_urlpatterns, health_urlpatterns, monitoring_urlpatterns

urlpatterns = admin_urlpatterns() + health_urlpatterns() + monitoring_urlpatterns()
