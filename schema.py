from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    Float,
    DateTime,
)
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    capital = Column(String(255), nullable=False, default="Unknown")
    region = Column(String(255), nullable=False, default="Unknown")
    population = Column(BigInteger, nullable=False, default=0)
    currency_code = Column(String(16), nullable=False, default="USD")
    exchange_rate = Column(Float, nullable=False, default=1.0)
    estimated_gdp = Column(Float, nullable=False, default=0.0)
    flag_url = Column(String(1024), nullable=False, default="")
    last_refreshed_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Country {self.name!r}>"
