# vitrine/modules/payment_fees/services.py

import uuid
from typing import Dict, List, Optional

from loguru import logger

from vitrine.core.errors import InvalidInputError, NotFoundError
from .models import CardBrand, FeeCalculation, FeeCalculationResult, PaymentFeeConfig, PaymentMethod


class FeeConfigNotFoundError(NotFoundError):
    code = "fee_config_not_found"

    def __init__(self, message: str = "Configuração de taxa não encontrada", **kwargs):
        super().__init__(message, **kwargs)


def _default(method: PaymentMethod, pct: float, fixed: float = 0, brand: Optional[CardBrand] = None,
             max_installments: Optional[int] = None, installment_pct: Optional[float] = None) -> PaymentFeeConfig:
    return PaymentFeeConfig(
        payment_method=method,
        card_brand=brand,
        fee_percentage=pct,
        fee_fixed=fixed,
        max_installments=max_installments,
        installment_fee_percentage=installment_pct,
    )


DEFAULT_FEE_CONFIGS: List[PaymentFeeConfig] = [
    _default("pix", 0),
    _default("cash", 0),
    _default("debit", 1.5, brand="visa"),
    _default("debit", 1.5, brand="mastercard"),
    _default("debit", 1.5, brand="elo"),
    _default("credit", 2.5, 0.50, brand="visa", max_installments=12, installment_pct=0.5),
    _default("credit", 2.5, 0.50, brand="mastercard", max_installments=12, installment_pct=0.5),
    _default("credit", 2.7, 0.50, brand="elo", max_installments=12, installment_pct=0.5),
    _default("credit", 3.5, 0.50, brand="amex", max_installments=12, installment_pct=0.7),
]


class PaymentFeeManager:
    """Tabela de taxas em memória, indexada por `method` ou `method_brand`."""

    def __init__(self):
        self._configs: Dict[str, PaymentFeeConfig] = {}

    @staticmethod
    def _config_key(payment_method: str, card_brand: Optional[str] = None) -> str:
        return f"{payment_method}_{card_brand}" if card_brand else payment_method

    def add_config(self, config: PaymentFeeConfig) -> PaymentFeeConfig:
        if config.id is None:
            config = config.model_copy(update={"id": str(uuid.uuid4())})
        key = self._config_key(config.payment_method, config.card_brand)
        self._configs[key] = config
        logger.debug(f"Payment fee config set for '{key}'")
        return config

    def get_config(self, payment_method: str, card_brand: Optional[str] = None) -> Optional[PaymentFeeConfig]:
        return self._configs.get(self._config_key(payment_method, card_brand))

    def remove_config(self, payment_method: str, card_brand: Optional[str] = None) -> bool:
        return self._configs.pop(self._config_key(payment_method, card_brand), None) is not None

    def get_all_configs(self) -> List[PaymentFeeConfig]:
        return list(self._configs.values())

    def calculate_fee(self, calculation: FeeCalculation) -> FeeCalculationResult:
        config = self.get_config(calculation.payment_method, calculation.card_brand)
        if config is None:
            raise FeeConfigNotFoundError()

        amount = calculation.amount
        installments = calculation.installments
        if installments > (config.max_installments or 1):
            raise InvalidInputError(
                f"Número de parcelas ({installments}) acima do máximo permitido ({config.max_installments or 1})"
            )

        fee_percentage_amount = amount * config.fee_percentage / 100
        fee_fixed_amount = config.fee_fixed
        installment_fee_amount = 0.0
        if installments > 1 and config.installment_fee_percentage:
            installment_fee_amount = amount * config.installment_fee_percentage / 100 * (installments - 1)

        total_fee = fee_percentage_amount + fee_fixed_amount + installment_fee_amount
        return FeeCalculationResult(
            gross_amount=amount,
            fee_percentage_amount=fee_percentage_amount,
            fee_fixed_amount=fee_fixed_amount,
            installment_fee_amount=installment_fee_amount,
            total_fee=total_fee,
            net_amount=amount - total_fee,
            installment_value=amount / installments if installments > 1 else None,
        )


_fee_manager: Optional[PaymentFeeManager] = None


def get_payment_fee_manager() -> PaymentFeeManager:
    """Singleton carregado com as taxas padrão."""
    global _fee_manager
    if _fee_manager is None:
        _fee_manager = PaymentFeeManager()
        for config in DEFAULT_FEE_CONFIGS:
            _fee_manager.add_config(config)
    return _fee_manager
