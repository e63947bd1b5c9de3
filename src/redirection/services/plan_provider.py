"""Migration plans for the redirection schema and the expected target schema.

The upgrade table lists, per schema version, the stages needed to reach it.
A plan is the ordered concatenation of every entry newer than the stored
version:

    1.0   → add_title_201 → add_group_indices_216 → ... → convert_title_to_text_240
    ""    → create_tables → create_groups              (fresh install)

Stage bodies (the actual DDL) are supplied by the host; this module only
knows stage ids, their order and their human-readable descriptions.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from redirection.services.option_store import OptionStore
from redirection.utils.logging import service_logger
from redirection.utils.versioning import TARGET_DB_VERSION, is_newer


class UpgradeDefinition(BaseModel):
    """Single stage of the upgrade table."""

    version: str = Field(..., description="Schema version the stage belongs to")
    stage: str = Field(..., description="Stable stage identifier")
    reason: str = Field(..., description="Human-readable description shown in the UI")


UPGRADES: List[UpgradeDefinition] = [
    UpgradeDefinition(version="2.0.1", stage="add_title_201", reason="Add titles to redirects"),
    UpgradeDefinition(version="2.1.16", stage="add_group_indices_216", reason="Add indices to groups"),
    UpgradeDefinition(version="2.2", stage="add_group_indices_220", reason="Add module and status indices to groups"),
    UpgradeDefinition(version="2.2", stage="add_redirect_data_220", reason="Add redirect data column"),
    UpgradeDefinition(version="2.3.1", stage="remove_404_module_231", reason="Remove 404 module"),
    UpgradeDefinition(version="2.3.1", stage="create_404_table_231", reason="Create 404 log table"),
    UpgradeDefinition(version="2.3.2", stage="remove_modules_232", reason="Remove module table"),
    UpgradeDefinition(version="2.3.3", stage="fix_invalid_groups_233", reason="Move redirects in invalid groups"),
    UpgradeDefinition(version="2.4", stage="convert_int_ip_to_varchar_240", reason="Convert integer IP values to support IPv6"),
    UpgradeDefinition(version="2.4", stage="expand_log_ip_column_240", reason="Expand IP column in logs"),
    UpgradeDefinition(version="2.4", stage="add_missing_index_240", reason="Add missing IP index to 404 logs"),
    UpgradeDefinition(version="2.4", stage="convert_title_to_text_240", reason="Expand size of redirect titles"),
]

INSTALL: List[UpgradeDefinition] = [
    UpgradeDefinition(version=TARGET_DB_VERSION, stage="create_tables", reason="Install Redirection tables"),
    UpgradeDefinition(version=TARGET_DB_VERSION, stage="create_groups", reason="Create basic data"),
]


class LatestDatabase:
    """Schema collaborator: the table layout of the current schema version."""

    def __init__(self, prefix: str = "wp_"):
        self.prefix = prefix

    def get_table_schema(self) -> Dict[str, str]:
        """Expected ``CREATE TABLE`` statement per table, used as a debug snapshot."""
        p = self.prefix
        return {
            f"{p}redirection_items": (
                f"CREATE TABLE `{p}redirection_items` ("
                "`id` int(11) unsigned NOT NULL AUTO_INCREMENT, "
                "`url` mediumtext NOT NULL, "
                "`match_url` varchar(2000) DEFAULT NULL, "
                "`match_data` text, "
                "`regex` int(11) unsigned NOT NULL DEFAULT '0', "
                "`position` int(11) unsigned NOT NULL DEFAULT '0', "
                "`last_count` int(10) unsigned NOT NULL DEFAULT '0', "
                "`last_access` datetime NOT NULL DEFAULT '1970-01-01 00:00:00', "
                "`group_id` int(11) NOT NULL DEFAULT '0', "
                "`status` enum('enabled','disabled') NOT NULL DEFAULT 'enabled', "
                "`action_type` varchar(20) NOT NULL, "
                "`action_code` int(11) unsigned NOT NULL, "
                "`action_data` mediumtext, "
                "`match_type` varchar(20) NOT NULL, "
                "`title` text, "
                "PRIMARY KEY (`id`), KEY `url` (`url`(191)), KEY `status` (`status`), "
                "KEY `regex` (`regex`), KEY `group_idpos` (`group_id`,`position`), "
                "KEY `group` (`group_id`), KEY `match_url` (`match_url`(191)))"
            ),
            f"{p}redirection_groups": (
                f"CREATE TABLE `{p}redirection_groups` ("
                "`id` int(11) NOT NULL AUTO_INCREMENT, "
                "`name` varchar(50) NOT NULL, "
                "`tracking` int(11) NOT NULL DEFAULT '1', "
                "`module_id` int(11) unsigned NOT NULL DEFAULT '0', "
                "`status` enum('enabled','disabled') NOT NULL DEFAULT 'enabled', "
                "`position` int(11) unsigned NOT NULL DEFAULT '0', "
                "PRIMARY KEY (`id`), KEY `module_id` (`module_id`), KEY `status` (`status`))"
            ),
            f"{p}redirection_logs": (
                f"CREATE TABLE `{p}redirection_logs` ("
                "`id` int(11) unsigned NOT NULL AUTO_INCREMENT, "
                "`created` datetime NOT NULL, "
                "`url` mediumtext NOT NULL, "
                "`sent_to` mediumtext, "
                "`agent` mediumtext, "
                "`referrer` mediumtext, "
                "`redirection_id` int(11) unsigned DEFAULT NULL, "
                "`ip` varchar(45) DEFAULT NULL, "
                "`module_id` int(11) unsigned NOT NULL, "
                "`group_id` int(11) unsigned DEFAULT NULL, "
                "PRIMARY KEY (`id`), KEY `created` (`created`), "
                "KEY `redirection_id` (`redirection_id`), KEY `ip` (`ip`), "
                "KEY `group_id` (`group_id`), KEY `module_id` (`module_id`))"
            ),
            f"{p}redirection_404": (
                f"CREATE TABLE `{p}redirection_404` ("
                "`id` int(11) unsigned NOT NULL AUTO_INCREMENT, "
                "`created` datetime NOT NULL, "
                "`url` varchar(255) NOT NULL DEFAULT '', "
                "`agent` varchar(255) DEFAULT NULL, "
                "`referrer` varchar(255) DEFAULT NULL, "
                "`ip` varchar(45) DEFAULT NULL, "
                "PRIMARY KEY (`id`), KEY `created` (`created`), "
                "KEY `url` (`url`(191)), KEY `referrer` (`referrer`(191)), KEY `ip` (`ip`))"
            ),
        }


class MigrationPlanProvider:
    """Builds migration plans from the stored schema version."""

    def __init__(
        self,
        store: OptionStore,
        target_version: str = TARGET_DB_VERSION,
        upgrades: Optional[List[UpgradeDefinition]] = None,
        install: Optional[List[UpgradeDefinition]] = None,
    ):
        """Initialize plan provider.

        Args:
            store: Option store holding the stored schema version
            target_version: Version the plans lead to
            upgrades: Ordered upgrade table (default: redirection upgrades)
            install: Stages of a fresh install (default: create tables + data)
        """
        self.logger = service_logger("plan_provider")
        self.store = store
        self.target_version = target_version
        self.upgrades = list(UPGRADES if upgrades is None else upgrades)
        self.install = list(INSTALL if install is None else install)

    def get_upgrades_for_version(
        self, version: str, current_stage: Optional[str] = None
    ) -> List[str]:
        """Ordered stage ids needed to move from version to the target.

        Args:
            version: Stored schema version ("" for a fresh install)
            current_stage: Resume point; stages before it are dropped

        Returns:
            Ordered list of stage ids (empty if nothing to do)
        """
        if not version:
            stages = [upgrade.stage for upgrade in self.install]
        else:
            stages = [
                upgrade.stage
                for upgrade in self.upgrades
                if is_newer(upgrade.version, version)
                and not is_newer(upgrade.version, self.target_version)
            ]

        if current_stage is not None and current_stage in stages:
            stages = stages[stages.index(current_stage):]

        self.logger.debug(f"Plan for version '{version}': {stages}")
        return stages

    def get_upgrades(self) -> List[str]:
        """Plan from the currently stored schema version."""
        version = self.store.get_plugin_options()["database"]
        return self.get_upgrades_for_version(version)

    def get_reason(self, stage: str) -> str:
        """Human-readable description of a stage (the id itself if unknown)."""
        for upgrade in self.install + self.upgrades:
            if upgrade.stage == stage:
                return upgrade.reason
        return stage
