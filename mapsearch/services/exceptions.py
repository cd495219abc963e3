"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class SearchError(ServiceError):
    pass


class BackendUnavailable(SearchError):
    pass


class NoResultFound(SearchError):
    pass


class SceneUnavailable(ServiceError):
    pass
