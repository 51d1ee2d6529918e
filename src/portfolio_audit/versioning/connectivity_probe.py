"""
ConnectivityProbe: check credentials and remote reachability.

Lists the remote's branch heads against the authenticated URL. Nothing is
fetched, written or committed, so the probe does not take the mutation gate.
"""

import logging

from .credential_injector import CredentialInjector
from .errors import (
    AuthenticationFailed,
    MissingCredentials,
    NoSuchRemote,
    ProcessFailure,
)
from .git_error_classifier import classify_git_error
from .models import ConnectionTestResult
from .repository_gateway import RepositoryGateway

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "GitHub bağlantısı ve kimlik bilgileri başarıyla doğrulandı."
UNREACHABLE_MESSAGE = (
    "Uzak depoya ulaşılamadı. Lütfen ağ bağlantısını ve depo adresini kontrol edin."
)
TIMEOUT_MESSAGE = "Uzak depo zaman aşımı nedeniyle yanıt vermedi."


class ConnectivityProbe:
    def __init__(self, gateway: RepositoryGateway, credential_injector: CredentialInjector):
        self.gateway = gateway
        self.credential_injector = credential_injector

    def test_connection(self) -> ConnectionTestResult:
        """
        Verify that the configured credentials can read the remote.

        Returns:
            ConnectionTestResult(ok=True) on success; ok=False with an
            actionable message for missing/bad credentials, a missing remote,
            an unreachable host or a timeout

        Raises:
            NotARepository: If the working tree is not a git repository
            ProcessFailure: For unclassified tool failures
        """
        try:
            remote_url = self.credential_injector.build_authenticated_remote()
            heads = self.gateway.list_remote_refs(remote_url)
        except MissingCredentials as e:
            logger.warning("Connection test: credentials are not configured")
            return ConnectionTestResult(ok=False, message=e.public_message)
        except AuthenticationFailed as e:
            logger.warning("Connection test: remote rejected the credentials")
            return ConnectionTestResult(ok=False, message=e.public_message)
        except NoSuchRemote as e:
            logger.warning(f"Connection test: remote '{e.remote_name}' is not configured")
            return ConnectionTestResult(ok=False, message=e.public_message)
        except ProcessFailure as e:
            if e.timed_out:
                logger.warning("Connection test: remote timed out")
                return ConnectionTestResult(ok=False, message=TIMEOUT_MESSAGE)
            if self._is_unreachable(e):
                logger.warning(f"Connection test: remote unreachable: {e}")
                return ConnectionTestResult(ok=False, message=UNREACHABLE_MESSAGE)
            raise

        logger.info(f"Connection test succeeded ({len(heads)} remote branch(es))")
        return ConnectionTestResult(ok=True, message=SUCCESS_MESSAGE)

    @staticmethod
    def _is_unreachable(error: ProcessFailure) -> bool:
        return classify_git_error(error.stderr) == "network"
