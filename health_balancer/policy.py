"""
오류 분류 정책

전송 오류를 재시도 가능/치명적 오류로 분류합니다. 규칙은 순서대로 검사하며
처음 일치한 규칙이 적용됩니다.
"""

import importlib
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type

from .errors import (
    ConnectionFailure,
    ProtocolViolation,
    RequestRejected,
    RequestValidationError,
    ResourceNotFound,
    ServerError,
    TransportError,
    TransportTimeout,
)


class ErrorClass(str, Enum):
    """오류 분류"""
    FATAL = "fatal"                    # 즉시 중단, 엔드포인트 헬스에 반영하지 않음
    FATAL_PENALIZE = "fatal_penalize"  # 즉시 중단, 엔드포인트 실패로 기록
    RETRYABLE = "retryable"            # 실패로 기록 후 다른 엔드포인트로 재시도

    @property
    def is_fatal(self) -> bool:
        return self is not ErrorClass.RETRYABLE

    @property
    def penalizes(self) -> bool:
        return self is not ErrorClass.FATAL


Rule = Tuple[Type[BaseException], ErrorClass]


DEFAULT_RULES: Tuple[Rule, ...] = (
    (ResourceNotFound, ErrorClass.FATAL),
    (RequestRejected, ErrorClass.FATAL),
    (RequestValidationError, ErrorClass.FATAL),
    (ProtocolViolation, ErrorClass.FATAL_PENALIZE),
    (ConnectionFailure, ErrorClass.RETRYABLE),
    (TransportTimeout, ErrorClass.RETRYABLE),
    (ServerError, ErrorClass.RETRYABLE),
    (TransportError, ErrorClass.RETRYABLE),
    (ValueError, ErrorClass.FATAL),
    (TypeError, ErrorClass.FATAL),
    (OSError, ErrorClass.RETRYABLE),
)


class ErrorPolicy:
    """
    예외 타입 -> 분류 규칙 목록

    사용 예:
        policy = ErrorPolicy().with_rules([(MyQuotaError, ErrorClass.FATAL)])
        policy.classify(MyQuotaError())  # ErrorClass.FATAL
    """

    def __init__(
        self,
        rules: Optional[Sequence[Rule]] = None,
        default: ErrorClass = ErrorClass.RETRYABLE
    ):
        """
        Args:
            rules: (예외 타입, 분류) 목록 (None 이면 DEFAULT_RULES)
            default: 어떤 규칙에도 맞지 않는 오류의 분류
        """
        self._rules: List[Rule] = list(DEFAULT_RULES if rules is None else rules)
        self.default = default

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return tuple(self._rules)

    def classify(self, error: BaseException) -> ErrorClass:
        for error_type, error_class in self._rules:
            if isinstance(error, error_type):
                return error_class
        return self.default

    def with_rules(self, rules: Iterable[Rule]) -> 'ErrorPolicy':
        """주어진 규칙을 기존 규칙보다 우선하도록 앞에 붙인 새 정책"""
        return ErrorPolicy(list(rules) + self._rules, default=self.default)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Iterable[str]]]) -> 'ErrorPolicy':
        """
        설정에서 정책 생성

        설정 예 (YAML):
            error_policy:
              fatal: [myapp.errors.QuotaExceeded]
              retryable: [myapp.errors.Busy]
              default: retryable
        """
        policy = cls()
        if not config:
            return policy

        overrides: List[Rule] = []
        for error_class in ErrorClass:
            for dotted in config.get(error_class.value, []) or []:
                overrides.append((resolve_exception(dotted), error_class))

        default = ErrorClass(config.get('default', ErrorClass.RETRYABLE.value))
        return cls(overrides + list(policy.rules), default=default)


def resolve_exception(dotted: str) -> Type[BaseException]:
    """'package.module.ClassName' 문자열을 예외 클래스로 변환"""
    module_name, _, attr = dotted.rpartition('.')
    if not module_name:
        module_name = 'builtins'
    try:
        resolved = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"예외 클래스를 찾을 수 없습니다: {dotted}") from e
    if not (isinstance(resolved, type) and issubclass(resolved, BaseException)):
        raise ValueError(f"예외 클래스가 아닙니다: {dotted}")
    return resolved
