"""High-level workflow orchestration."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Union

from .actions import ActionContext, ActionKind, ActionRegistry, default_registry
from .actions.keys import DEPLOY_KEY_CONFIRMED
from .actions.web import NginxSite
from .config import AppConfig
from .credentials import ConnectionSettings, CredentialReconciler
from .interaction import UserInteractionHandler
from .local import LocalSession
from .pipeline import (
    PipelineRun,
    PipelineRunner,
    ProvisioningStep,
    RunLog,
    StepEvent,
    StepEventKind,
)
from .questionnaire import SetupAnswers, collect_setup_answers
from .runtimes import NodeVersionCatalog
from .utils.logging import get_logger

logger = get_logger(__name__)


def _deploy_key_confirmed(context: ActionContext) -> bool:
    return bool(context.shared.get(DEPLOY_KEY_CONFIRMED))


def progress_listener(handler: UserInteractionHandler) -> Callable[[StepEvent], None]:
    """Render step events through the interaction handler."""

    def _listener(event: StepEvent) -> None:
        prefix = f"[{event.index}/{event.total}] {event.step_name}"
        if event.kind is StepEventKind.STARTED:
            handler.notify(f"{prefix}...")
        elif event.kind is StepEventKind.SUCCEEDED:
            handler.notify(f"{prefix} done", level="success")
        elif event.kind is StepEventKind.SKIPPED:
            handler.notify(f"{prefix} skipped")
        else:
            handler.notify(f"{prefix} failed: {event.error}", level="error")

    return _listener


class ProvisioningWorkflow:
    """Builds step lists for each command and runs them through the pipeline."""

    def __init__(
        self,
        config: AppConfig,
        interaction_handler: UserInteractionHandler,
        session: Optional[LocalSession] = None,
        registry: ActionRegistry = default_registry,
        node_versions: Optional[NodeVersionCatalog] = None,
    ) -> None:
        self.config = config
        self.interaction = interaction_handler
        self.session = session or LocalSession()
        self.registry = registry
        self.node_versions = node_versions or NodeVersionCatalog()
        self.reconciler = CredentialReconciler(
            settings=ConnectionSettings(host=config.database.host, port=config.database.port)
        )

    # ------------------------------------------------------------------
    # Step lists
    # ------------------------------------------------------------------

    def _step(self, kind: ActionKind, *, required: bool = True, condition=None, **params) -> ProvisioningStep:
        return ProvisioningStep.of(
            self.registry.create(kind, **params), required=required, condition=condition
        )

    def build_setup_steps(self, answers: SetupAnswers) -> List[ProvisioningStep]:
        """Full server setup: runtime, web server, release and database."""
        base_path = Path(answers.clone_dir)
        current = base_path / self.config.provision.link_name

        steps = [
            self._step(ActionKind.GENERATE_DEPLOY_KEY, key_dir=Path(self.config.provision.ssh_dir).expanduser()),
        ]
        if answers.is_php:
            steps += [
                self._step(ActionKind.INSTALL_PHP, version=answers.php_version),
                self._step(ActionKind.INSTALL_PHP_EXTENSIONS, version=answers.php_version),
            ]
        else:
            steps += [
                self._step(ActionKind.INSTALL_NODE, version=answers.node_version),
                self._step(ActionKind.INSTALL_PACKAGE_MANAGER, manager=answers.package_manager),
            ]

        site = NginxSite(
            app_type=answers.app_type,
            root=current,
            domain=answers.domain,
            php_version=answers.php_version,
            node_port=answers.node_port,
        )
        steps.append(self._step(ActionKind.CONFIGURE_NGINX, site=site))
        if answers.domain:
            steps.append(self._step(ActionKind.REQUEST_CERTIFICATE, domain=answers.domain))

        steps += [
            self._step(ActionKind.CONFIRM_DEPLOY_KEY),
            self._step(
                ActionKind.DEPLOY_RELEASE,
                condition=_deploy_key_confirmed,
                repo_url=answers.repo_url,
                base_path=base_path,
                link_name=self.config.provision.link_name,
            ),
        ]
        if not answers.is_php:
            steps.append(self._step(
                ActionKind.START_NODE_APP,
                condition=_deploy_key_confirmed,
                app_dir=current,
                app_name=base_path.name or "app",
                package_manager=answers.package_manager,
                should_build=answers.should_build,
                use_dev=answers.use_dev,
            ))
        steps += self.build_database_steps(base_path, condition=_deploy_key_confirmed)
        return steps

    def build_database_steps(
        self,
        repo_path: Union[str, Path],
        condition: Optional[Callable[[ActionContext], bool]] = None,
    ) -> List[ProvisioningStep]:
        """MySQL install, credential resolution, user creation and ``.env`` update."""
        repo_path = Path(repo_path)
        root_password = self.config.database.root_password
        return [
            self._step(ActionKind.INSTALL_MYSQL, condition=condition),
            self._step(
                ActionKind.RESOLVE_CREDENTIALS,
                condition=condition,
                repo_path=repo_path,
                reconciler=self.reconciler,
            ),
            self._step(ActionKind.PROVISION_DATABASE, condition=condition, root_password=root_password),
            self._step(
                ActionKind.WRITE_CREDENTIALS,
                condition=condition,
                env_path=repo_path / ".env",
                reconciler=self.reconciler,
            ),
            self._step(
                ActionKind.IMPORT_SQL,
                required=False,
                condition=condition,
                root_password=root_password,
                base_dir=repo_path,
            ),
        ]

    def build_deploy_steps(
        self,
        repo_url: str,
        base_path: Union[str, Path],
        key_path: Optional[Union[str, Path]] = None,
    ) -> List[ProvisioningStep]:
        return [
            self._step(
                ActionKind.DEPLOY_RELEASE,
                repo_url=repo_url,
                base_path=Path(base_path),
                private_key_path=Path(key_path).expanduser() if key_path else None,
                link_name=self.config.provision.link_name,
            ),
        ]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def create_context(self, working_dir: Optional[Path] = None) -> ActionContext:
        return ActionContext(
            session=self.session,
            interaction=self.interaction,
            working_dir=Path(working_dir) if working_dir else Path.cwd(),
        )

    def run_steps(
        self,
        name: str,
        steps: List[ProvisioningStep],
        context: Optional[ActionContext] = None,
    ) -> PipelineRun:
        run_log = RunLog(self.config.logging.log_dir, name) if self.config.logging.log_dir else None
        runner = PipelineRunner(context or self.create_context(), run_log=run_log)
        runner.add_listener(progress_listener(self.interaction))
        return runner.run(steps)

    def run_setup(self) -> PipelineRun:
        """Install base packages, ask the questionnaire, then provision everything."""
        context = self.create_context()
        base = self.run_steps("setup_base", [self._step(ActionKind.INSTALL_BASE_PACKAGES)], context)
        if base.failed_result is not None:
            return base

        answers = collect_setup_answers(
            self.interaction,
            self.config.provision,
            self.node_versions.versions(),
        )
        logger.info(f"Setting up {answers.app_type} application from {answers.repo_url}")
        run = self.run_steps("setup", self.build_setup_steps(answers), context)
        if run.failed_result is None and answers.domain:
            self.interaction.notify(f"Visit https://{answers.domain} in your browser", level="success")
        return run

    def run_database(self, repo_path: Union[str, Path]) -> PipelineRun:
        repo_path = Path(repo_path).resolve()
        return self.run_steps(
            "database",
            self.build_database_steps(repo_path),
            self.create_context(repo_path),
        )

    def run_deploy(
        self,
        repo_url: str,
        base_path: Optional[Union[str, Path]] = None,
        key_path: Optional[Union[str, Path]] = None,
    ) -> PipelineRun:
        base_path = Path(base_path or self.config.provision.deploy_dir)
        return self.run_steps("deploy", self.build_deploy_steps(repo_url, base_path, key_path))
