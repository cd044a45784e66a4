class TalkSyncError(Exception):
    pass


class ServiceError(TalkSyncError):
    pass


class TranslationError(ServiceError):
    pass


class ChatBackendError(ServiceError):
    pass


class ArithmeticServiceError(ServiceError):
    pass


class SpeechError(TalkSyncError):
    pass


class SessionError(TalkSyncError):
    pass
