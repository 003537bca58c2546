class W:
    # pesos planos: una regla suma todo su peso o nada
    FAKE_USDT = 100
    DUST_SPAM = 20
    BOT_FREQUENCY = 15
    FAN_IN = 25
    ZERO_VALUE = 10

    MAX_SCORE = 100
