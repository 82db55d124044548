"""
Health Service - environment, database and storage checks

Author: TM3
Date: 2025-10-17
"""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any

from app.core.config import settings
from app.core.database import get_db_connection_with_retry
from app.connectors.storage_connector import StorageConnector

logger = logging.getLogger(__name__)

# Tables the storefront reads on every request
CHECKED_TABLES = ('file_uploads', 'products', 'orders')

HEALTH_CHECK_FOLDER = "health-checks"

# Overwritten on every run, so a failed delete leaves at most this one object
HEALTH_CHECK_OBJECT = f"{HEALTH_CHECK_FOLDER}/status.txt"


class HealthService:
    """
    Service for system health checks

    Overall status:
        healthy   - environment, database and storage all pass
        degraded  - database or storage passes
        unhealthy - neither passes
    """

    def __init__(self, storage: StorageConnector = None):
        self._storage = storage

    @property
    def storage(self) -> StorageConnector:
        if self._storage is None:
            self._storage = StorageConnector()
        return self._storage

    def check_environment(self) -> Dict[str, Any]:
        return {
            'has_supabase_url': bool(settings.SUPABASE_URL),
            'has_supabase_key': bool(settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY),
            'has_database_url': bool(settings.DATABASE_URL),
        }

    def check_database(self) -> Dict[str, Any]:
        """Connect and read one row from every table the storefront uses"""
        result = {'connection': False, 'permissions': {'read': False}, 'tables': {}, 'latency_ms': None}

        start = time.time()
        try:
            conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        except Exception as e:
            result['error'] = str(e)
            return result

        result['connection'] = True
        cursor = conn.cursor()
        try:
            for table in CHECKED_TABLES:
                try:
                    cursor.execute(f"SELECT id FROM {table} LIMIT 1")
                    cursor.fetchall()
                    result['tables'][table] = True
                except Exception as e:
                    conn.rollback()
                    result['tables'][table] = False
                    result.setdefault('errors', {})[table] = str(e)
        finally:
            cursor.close()
            conn.close()

        result['permissions']['read'] = all(result['tables'].values())
        result['latency_ms'] = round((time.time() - start) * 1000, 2)
        return result

    def check_storage(self) -> Dict[str, Any]:
        """Bucket exists, can be listed, and accepts an upload and delete"""
        result = {
            'bucket': self.storage.bucket,
            'bucket_exists': False,
            'can_list': False,
            'can_upload': False,
            'can_delete': False,
        }

        try:
            result['bucket_info'] = self.storage.bucket_info()
            result['bucket_exists'] = True
        except Exception as e:
            result['error'] = str(e)
            return result

        try:
            self.storage.list(HEALTH_CHECK_FOLDER)
            result['can_list'] = True
        except Exception as e:
            result['list_error'] = str(e)

        try:
            self.storage.upload(HEALTH_CHECK_OBJECT, b"health check", "text/plain", upsert=True)
            result['can_upload'] = True
        except Exception as e:
            result['upload_error'] = str(e)
            return result

        try:
            self.storage.remove([HEALTH_CHECK_OBJECT])
            result['can_delete'] = True
        except Exception as e:
            result['delete_error'] = str(e)

        return result

    def system_health(self) -> Dict[str, Any]:
        """Run every check and compute the overall status"""
        environment = self.check_environment()
        database = self.check_database()
        storage = self.check_storage()

        db_healthy = database['connection'] and database['permissions']['read']
        storage_healthy = storage['bucket_exists'] and storage['can_list']
        env_healthy = all(environment.values())

        if db_healthy and storage_healthy and env_healthy:
            overall = 'healthy'
        elif db_healthy or storage_healthy:
            overall = 'degraded'
        else:
            overall = 'unhealthy'

        logger.info(
            f"System health: {overall} (database={db_healthy}, storage={storage_healthy}, environment={env_healthy})"
        )

        return {
            'status': overall,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'checks': {
                'environment': environment,
                'database': database,
                'storage': storage,
            },
        }
