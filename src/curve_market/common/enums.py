from enum import Enum


class OrderSide(Enum):
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def from_str(cls, side_str):
        if side_str.upper() == OrderSide.BUY.name:
            return OrderSide.BUY
        elif side_str.upper() == OrderSide.SELL.name:
            return OrderSide.SELL
        else:
            raise NotImplementedError(f"No order side enum for {side_str}")

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()


class MarketEventType(Enum):
    BOUGHT = "Bought"
    SOLD = "Sold"
    FEE_COLLECTED = "FeeCollected"

    @classmethod
    def from_str(cls, event_str: str) -> "MarketEventType":
        """
        Convert either the enum name ("FEE_COLLECTED") or the event name ("FeeCollected") to a MarketEventType.
        :param event_str: str
        :return: MarketEventType or NotImplementedError
        """
        for event_type in cls:
            if event_str.upper() in (event_type.name, event_type.value.upper()):
                return event_type
        raise NotImplementedError(f"No market event enum for {event_str}")

    def __str__(self):
        return self.value

    def __repr__(self):
        return self.__str__()
