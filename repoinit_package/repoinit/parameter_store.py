"""Optional placeholder values from AWS Systems Manager Parameter Store."""

import logging
import re
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from jinja2 import Template, TemplateError as JinjaTemplateError

from .errors import ParameterStoreError


class ParameterStore:
    """Fetches placeholder values from SSM Parameter Store."""

    def __init__(self, parameter_store_map: Optional[Dict[str, str]] = None, ssm_client=None):
        """
        Args:
            parameter_store_map: Mapping of placeholder key to parameter path
            ssm_client: Pre-built boto3 SSM client (created lazily when omitted)
        """
        self.parameter_store_map = parameter_store_map or {}
        self.ssm_client = ssm_client
        self.logger = logging.getLogger('repoinit.parameter_store')

    def _initialize_client(self) -> None:
        """Initialize AWS Systems Manager client."""
        try:
            self.logger.info("Initializing AWS Systems Manager client")
            self.ssm_client = boto3.client('ssm')
        except (BotoCoreError, ClientError) as e:
            raise ParameterStoreError(f"Failed to initialize AWS client: {e}")

    def render_path(self, path_template: str, context: Dict[str, str]) -> str:
        """
        Render a parameter path template using Jinja2 with the provided context.

        Args:
            path_template: Path with Jinja2 variables (e.g., "/org/{{ REPOSITORY_OWNER }}/holder")
            context: Template variables

        Returns:
            Rendered path with variables substituted
        """
        try:
            path = Template(path_template).render(**context).strip()
        except JinjaTemplateError as e:
            raise ParameterStoreError(f"Failed to render parameter path '{path_template}': {e}")

        if not path:
            raise ParameterStoreError(f"Parameter path '{path_template}' rendered empty")
        if '..' in path or re.search(r'[<>"|*?]', path):
            raise ParameterStoreError(f"Parameter path contains invalid characters: {path}")
        return path

    def fetch(self, context: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Fetch every mapped parameter.

        Args:
            context: Values used to render templated parameter paths

        Returns:
            Dictionary mapping placeholder keys to their values
        """
        parameters = {}

        if not self.parameter_store_map:
            self.logger.debug("No Parameter Store mappings configured, skipping AWS parameter fetch")
            return parameters

        if not self.ssm_client:
            self._initialize_client()

        for key, path_template in self.parameter_store_map.items():
            param_path = self.render_path(path_template, context or {})
            self.logger.info(f"Fetching parameter: {key} from {param_path}")

            try:
                response = self.ssm_client.get_parameter(Name=param_path, WithDecryption=True)
            except ClientError as e:
                error_code = e.response['Error']['Code']
                if error_code == 'ParameterNotFound':
                    raise ParameterStoreError(f"Parameter not found: {param_path}")
                elif error_code == 'AccessDenied':
                    raise ParameterStoreError(f"Access denied for parameter: {param_path}")
                raise ParameterStoreError(f"AWS error fetching {param_path}: {e}")
            except BotoCoreError as e:
                raise ParameterStoreError(f"AWS connection error fetching {param_path}: {e}")

            parameters[key] = response['Parameter']['Value']

        self.logger.info(f"Successfully fetched {len(parameters)} parameters from Parameter Store")
        return parameters
