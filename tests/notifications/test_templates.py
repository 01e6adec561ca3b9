import jinja2
import pytest

from proud_profits.notifications.templates import NotificationTemplates


@pytest.fixture
def templates():
    return NotificationTemplates()


def test_signal_alert(templates):
    title, message = templates.render('signal_alert', signal_type='buy', ticker='BTCUSDT',
                                      price=65000, timeframe='1W')
    assert title == 'BUY signal: BTCUSDT'
    assert message == 'Buy signal for BTCUSDT at $65,000.00 on the 1W timeframe.'


def test_signal_alert_without_timeframe(templates):
    _, message = templates.render('signal_alert', signal_type='sell', ticker='ETHUSDT',
                                  price=3500.5, timeframe=None)
    assert message == 'Sell signal for ETHUSDT at $3,500.50.'


def test_price_alert(templates):
    title, message = templates.render('price_alert', symbol='ETHUSDT', change_percent=-5.25, price=3300)
    assert title == 'ETHUSDT down 5.25%'
    assert message == 'ETHUSDT is trading at $3,300.00.'


def test_missing_variable_raises(templates):
    with pytest.raises(jinja2.UndefinedError):
        templates.render('system', message='no title')


def test_unknown_template(templates):
    with pytest.raises(jinja2.TemplateNotFound):
        templates.render('newsletter')


def test_custom_templates():
    templates = NotificationTemplates({
        'achievement.title': "Unlocked: {{ name }}",
        'achievement.message': "You earned {{ name }}.",
    })
    assert 'achievement' in templates.names
    assert 'signal_alert' in templates.names
    assert templates.render('achievement', name='First Trade') == ('Unlocked: First Trade',
                                                                   'You earned First Trade.')
