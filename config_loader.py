"""設定ファイル読み込み機能"""
import json
import logging
import os
from typing import Any, Dict, Optional

from exceptions import ConfigurationError


VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigLoader:
    """設定ファイルと環境変数から設定を読み込む"""

    def __init__(self, config_path: str = "dump_config.json", required: bool = False):
        self.config_path = config_path
        self.required = required
        self._config = None

    def load_config(self) -> Dict[str, Any]:
        """設定ファイルと環境変数から設定を読み込む"""
        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except FileNotFoundError:
            if self.required:
                raise ConfigurationError(
                    f"設定ファイル '{self.config_path}' が見つかりません", config_path=self.config_path
                )
            config = {}
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"設定ファイルのJSON形式が正しくありません: {e}", config_path=self.config_path
            )

        if not isinstance(config, dict):
            raise ConfigurationError("設定ファイルのトップレベルはオブジェクトである必要があります",
                                     config_path=self.config_path)

        # 環境変数で上書き可能
        env_overrides = {
            'SQLITE_DUMP_DATABASE': 'database',
            'SQLITE_DUMP_OUTPUT': 'output',
            'SQLITE_DUMP_LOG_LEVEL': 'logLevel',
        }
        for env_name, key in env_overrides.items():
            value = os.getenv(env_name)
            if value:
                config[key] = value

        pushgateway_url = os.getenv('PROM_PUSHGATEWAY_URL')
        if pushgateway_url:
            config.setdefault('metrics', {})['pushgatewayUrl'] = pushgateway_url

        if 'metrics' in config and not isinstance(config['metrics'], dict):
            raise ConfigurationError("'metrics' はオブジェクトである必要があります",
                                     config_path=self.config_path)

        if 'logLevel' in config:
            self._validate_log_level(config['logLevel'])

        self._config = config
        return self._config

    def _validate_log_level(self, level: Any) -> None:
        """ログレベル名の検証"""
        if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"ログレベルが正しくありません: {level} ({', '.join(VALID_LOG_LEVELS)} のいずれかを指定してください)",
                config_path=self.config_path
            )

    @property
    def database_path(self) -> Optional[str]:
        """ダンプ元データベースのパス"""
        return self.load_config().get('database')

    @property
    def output_path(self) -> Optional[str]:
        """ダンプ出力先（'-' は標準出力）"""
        return self.load_config().get('output')

    @property
    def log_level(self) -> int:
        """ログレベル"""
        level = self.load_config().get('logLevel', 'INFO')
        return getattr(logging, level.upper())

    @property
    def pushgateway_url(self) -> Optional[str]:
        """Prometheus Pushgateway URL"""
        return self.load_config().get('metrics', {}).get('pushgatewayUrl')

    @property
    def job_name(self) -> str:
        """Pushgateway のジョブ名"""
        return self.load_config().get('metrics', {}).get('jobName', 'sqlite_dump')
