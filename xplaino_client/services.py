from __future__ import annotations

from xplaino_client.apis import (
    AskApi,
    CouponApi,
    FolderApi,
    IssueApi,
    SavedImageApi,
    SavedParagraphApi,
    SimplifyApi,
    SubscriptionApi,
    UserSettingsApi,
    WordsApi,
)
from xplaino_client.auth import (
    AnonymousIdSynchronizer,
    AuthHeaderBuilder,
    CredentialStore,
    FileCredentialStore,
    get_auth_state,
)
from xplaino_client.classify import ResponseClassifier
from xplaino_client.config import AppSettings
from xplaino_client.http import RequestExecutor
from xplaino_client.models import AuthState, Credentials
from xplaino_client.notifiers import LoggingNotifier, UiNotifier
from xplaino_client.refresh import BackendTokenRefresher, TokenRefreshCoordinator
from xplaino_client.transport import HttpxTransport, Transport


class XplainoService:
    def __init__(
        self,
        settings: AppSettings,
        store: CredentialStore,
        transport: Transport,
        executor: RequestExecutor,
        coordinator: TokenRefreshCoordinator,
    ):
        self._settings = settings
        self._store = store
        self._transport = transport
        self._executor = executor
        self._coordinator = coordinator

        self.words = WordsApi(settings, executor)
        self.folders = FolderApi(settings, executor)
        self.saved_paragraphs = SavedParagraphApi(settings, executor)
        self.saved_images = SavedImageApi(settings, executor)
        self.simplify = SimplifyApi(settings, executor)
        self.ask = AskApi(settings, executor)
        self.issues = IssueApi(settings, executor, store)
        self.user_settings = UserSettingsApi(settings, executor)
        self.subscription = SubscriptionApi(settings, executor, store)
        self.coupons = CouponApi(settings, executor)

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    @property
    def coordinator(self) -> TokenRefreshCoordinator:
        return self._coordinator

    def auth_state(self) -> AuthState:
        return get_auth_state(self._store)

    def sign_in(self, credentials: Credentials) -> AuthState:
        self._store.set_credentials(credentials)
        return self.auth_state()

    def sign_out(self) -> None:
        self._store.clear_credentials()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "XplainoService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_service(
    settings: AppSettings,
    store: CredentialStore | None = None,
    notifier: UiNotifier | None = None,
    transport: Transport | None = None,
) -> XplainoService:
    store = store or FileCredentialStore(settings.credentials_path)
    notifier = notifier or LoggingNotifier()
    transport = transport or HttpxTransport(settings)

    header_builder = AuthHeaderBuilder(store, settings.anonymous_id_header)
    synchronizer = AnonymousIdSynchronizer(store, settings.anonymous_id_header)
    refresher = BackendTokenRefresher(settings, transport, header_builder, synchronizer)
    coordinator = TokenRefreshCoordinator(store, refresher, notifier)
    executor = RequestExecutor(
        transport=transport,
        header_builder=header_builder,
        synchronizer=synchronizer,
        classifier=ResponseClassifier(refresh_on_bare_401=settings.refresh_on_bare_401),
        coordinator=coordinator,
        notifier=notifier,
    )
    return XplainoService(settings, store, transport, executor, coordinator)
