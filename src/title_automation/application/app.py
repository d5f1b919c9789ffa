from __future__ import annotations

import logging
import os
import signal
import time
from pathlib import Path
from types import FrameType
from typing import Callable, final

from title_automation.application.gateways.entra_token_gateway import EntraTokenGateway
from title_automation.application.gateways.graph_inventory_gateway import (
    GraphInventoryGateway,
)
from title_automation.application.gateways.label_script_gateway import LabelScriptGateway
from title_automation.application.repositories.title_metadata_repository import (
    TitleMetadataRepository,
)
from title_automation.application.repositories.upload_marker_repository import (
    UploadMarkerRepository,
)
from title_automation.application.scheduler.apscheduler_runner import APSchedulerRunner
from title_automation.config.logging_setup import configure_logging, with_title_label
from title_automation.config.settings_loader import SettingsLoader
from title_automation.domain.models.app_config import AppConfig
from title_automation.domain.models.processed_app_results import ProcessedAppResults
from title_automation.domain.services.cache_cleanup import (
    remove_orphaned_caches,
    trim_old_versions,
)
from title_automation.domain.protocols.scheduler_port import SchedulerPort
from title_automation.domain.workflows.confirm_upload import ConfirmUpload
from title_automation.domain.workflows.finalize_upload import FinalizeUpload
from title_automation.domain.workflows.process_removal_queue import (
    TRIGGER_SUFFIX,
    ProcessRemovalQueue,
)
from title_automation.domain.workflows.remove_automation import RemoveAutomation


def load_config_from_env() -> AppConfig:
    settings_file = os.getenv("SETTINGS_FILE")
    return SettingsLoader.load(Path(settings_file) if settings_file else None)


@final
class WorkerApp:
    def __init__(
        self,
        config: AppConfig,
        scheduler_factory: Callable[[], SchedulerPort] = APSchedulerRunner,
    ) -> None:
        self._config = config
        self._scheduler_factory = scheduler_factory
        self._scheduler: SchedulerPort | None = None
        self._should_stop = False
        self._log = logging.getLogger("title_automation.worker")
        self._build_adapters()

    def _build_adapters(self) -> None:
        user = self._config.user
        layout = self._config.paths.layout
        self._layout = layout
        self._token_provider = EntraTokenGateway(
            tenant_id=user.tenant_id or "",
            client_id=user.application_id or "",
            client_secret=user.client_secret or "",
            timeout_seconds=user.graph_timeout_seconds or 30,
        )
        self._inventory = GraphInventoryGateway(
            logger=self._log,
            timeout_seconds=user.graph_timeout_seconds or 30,
            on_unauthorized=self._token_provider.invalidate,
        )
        self._label_script = LabelScriptGateway(
            process_script_path=self._config.paths.process_label_script_path,
            layout=layout,
            logger=self._log,
            timeout_seconds=user.label_script_timeout_seconds or 300,
        )
        self._metadata = TitleMetadataRepository(layout)
        self._markers = UploadMarkerRepository(layout)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def token_provider(self) -> EntraTokenGateway:
        return self._token_provider

    def load_title(self, folder_name: str) -> ProcessedAppResults:
        return self._metadata.load(folder_name)

    @classmethod
    def run_from_env(cls) -> int:
        config = load_config_from_env()
        configure_logging(config.user.log_level, config.paths.logs_dir / "app_errors.log")
        return cls(config).run()

    def ensure_layout(self) -> None:
        paths = self._config.paths
        for directory in (
            paths.managed_titles_dir,
            paths.cache_dir,
            paths.removal_queue_dir,
            paths.locks_dir,
            paths.logs_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def build_remove_automation(self) -> RemoveAutomation:
        return RemoveAutomation(
            label_script=self._label_script,
            metadata=self._metadata,
            token_provider=self._token_provider,
            inventory=self._inventory,
            markers=self._markers,
            lock_dir=self._config.paths.locks_dir,
            logger=self._log,
        )

    def build_confirm_upload(self) -> ConfirmUpload:
        return ConfirmUpload(
            inventory=self._inventory,
            logger=self._log,
            max_attempts=self._config.poll_attempts,
            interval_seconds=self._config.poll_interval_seconds,
        )

    def build_finalize_upload(self) -> FinalizeUpload:
        return FinalizeUpload(
            confirm_upload=self.build_confirm_upload(),
            token_provider=self._token_provider,
            inventory=self._inventory,
            markers=self._markers,
            layout=self._layout,
            lock_dir=self._config.paths.locks_dir,
            logger=self._log,
            versions_to_keep=self._config.versions_to_keep,
        )

    def build_removal_queue(self) -> ProcessRemovalQueue:
        return ProcessRemovalQueue(
            remove_automation=with_title_label(self.build_remove_automation()),
            queue_dir=self._config.paths.removal_queue_dir,
            layout=self._layout,
            lock_path=self._config.paths.locks_dir / "removal-queue.lock",
            logger=self._log,
            worker_count=self._config.user.removal_workers or 1,
        )

    def enqueue_removal(self, folder_name: str) -> Path:
        self._config.paths.removal_queue_dir.mkdir(parents=True, exist_ok=True)
        trigger = self._config.paths.removal_queue_dir / f"{folder_name}{TRIGGER_SUFFIX}"
        trigger.touch()
        self._log.info("Queued removal of %s", folder_name)
        return trigger

    def _reload_runtime_settings(self) -> None:
        current = self._config
        try:
            loaded = SettingsLoader.load(current.paths.settings_path, current.paths.app_root)
        except Exception as exc:
            self._log.warning("Runtime settings reload failed: %s", exc)
            return
        if loaded.user == current.user:
            return
        self._config = loaded
        self._build_adapters()
        self._log.info("Settings reloaded from %s", current.paths.settings_path)

    def clean_cache(self) -> int:
        removed = remove_orphaned_caches(self._layout)
        removed += trim_old_versions(self._layout, self._config.versions_to_keep)
        if removed:
            self._log.info("Cache cleanup removed %d folder(s)", len(removed))
        return len(removed)

    def _run_queue_cycle(self) -> None:
        self._reload_runtime_settings()
        queue = self.build_removal_queue()
        _ = queue()
        _ = self.clean_cache()

    def start(self) -> None:
        self.ensure_layout()
        self._run_queue_cycle()

        scheduler = self._scheduler_factory()
        cron_expr = str(self._config.user.removal_queue_cron_expression or "").strip()
        if cron_expr:
            scheduler.schedule_cron("removal-queue", cron_expr, self._run_queue_cycle)
            self._log.info("Scheduler configured with cron: '%s'", cron_expr)
        else:
            scheduler.schedule_interval(
                "removal-queue", self._config.queue_interval_seconds, self._run_queue_cycle
            )
            self._log.info(
                "Scheduler configured with %ss interval",
                self._config.queue_interval_seconds,
            )

        scheduler.start()
        self._scheduler = scheduler
        self._log.info("Service started")

    def run(self) -> int:
        self._install_signal_handlers()
        self.start()
        try:
            while not self._should_stop:
                time.sleep(0.5)
        finally:
            self.shutdown()
        return 0

    def stop(self) -> None:
        self._should_stop = True

    def shutdown(self) -> None:
        scheduler = self._scheduler
        if scheduler is None:
            return
        self._scheduler = None
        scheduler.shutdown()
        self._log.info("Service stopped")

    def _install_signal_handlers(self) -> None:
        def _stop_handler(_signum: int, _frame: FrameType | None) -> None:
            self.stop()

        _ = signal.signal(signal.SIGTERM, _stop_handler)
        _ = signal.signal(signal.SIGINT, _stop_handler)
